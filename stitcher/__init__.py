"""Composite stitcher - frame + audio chunk sessions to a single MP4."""

__version__ = "0.1.0"
