"""Config, logging and geometry helpers."""
