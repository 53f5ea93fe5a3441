"""Errors, ports and application state shared across the app."""
