"""HeroKeeper management API."""
