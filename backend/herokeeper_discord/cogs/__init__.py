"""Discord extensions."""
