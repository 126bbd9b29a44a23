"""Shared infrastructure: configuration-aware database, logging and errors."""
