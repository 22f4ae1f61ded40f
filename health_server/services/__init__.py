"""Persistence, notification and reminder services."""
