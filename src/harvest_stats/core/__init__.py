"""Configuration for the harvest statistics service."""
