"""HeroKeeper Discord bot."""
