"""simgate admin application."""
