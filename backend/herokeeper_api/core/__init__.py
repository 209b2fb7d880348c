"""Core modules for the management API."""
