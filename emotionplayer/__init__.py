"""Emotion recognition from face images with playlist recommendations."""

__version__ = "1.0.0"