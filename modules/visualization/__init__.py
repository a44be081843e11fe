"""Draw-command rendering."""
