"""Guidance poll logging."""
