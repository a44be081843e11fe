"""Camera frame acquisition."""
