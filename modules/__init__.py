"""Snap Dust components: detection, recognition, effects, capture, visualization."""
