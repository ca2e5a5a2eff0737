"""HTTP API for the harvest statistics service."""
