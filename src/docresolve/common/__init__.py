"""Shared helpers: HTTP access, logging and platform paths."""
