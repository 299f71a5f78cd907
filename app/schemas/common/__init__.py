"""Shared schema building blocks."""
