"""Shared helpers for HTTP access and address handling."""
