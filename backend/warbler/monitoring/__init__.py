"""Process-local metrics exported in the Prometheus text format."""
