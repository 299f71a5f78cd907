"""Shared helpers for dates, times and formatting."""
