"""Shared core for HeroKeeper services (Discord bot + management API)."""
