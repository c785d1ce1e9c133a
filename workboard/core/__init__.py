"""Board-wide exceptions."""
