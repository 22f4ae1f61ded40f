"""Health reminder server."""
