"""tagrel: tag-triggered wheel release pipeline."""

__version__ = "0.3.0"
