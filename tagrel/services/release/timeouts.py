from __future__ import annotations

# GH / API operations
GH_TIMEOUT_SECONDS = 60.0

# Uploading wheels to a release can take a while on slow links.
GH_UPLOAD_TIMEOUT_SECONDS = 30 * 60.0

# External changelog generator (npx may need to download the package first)
CHANGELOG_TIMEOUT_SECONDS = 5 * 60.0

# Idempotent GH read retry policy
GH_READ_RETRY_ATTEMPTS = 3
GH_READ_RETRY_DELAY_SECONDS = 1.0
