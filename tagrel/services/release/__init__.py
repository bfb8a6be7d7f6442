"""Release pipeline: trigger, gate, build fan-out, changelog and publish."""
