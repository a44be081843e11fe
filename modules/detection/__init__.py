"""Hand landmark detection using MediaPipe."""
