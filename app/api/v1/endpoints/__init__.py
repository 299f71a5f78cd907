"""Endpoint modules of API v1."""
