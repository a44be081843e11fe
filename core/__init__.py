"""Core types, event bus and frame pipeline."""
