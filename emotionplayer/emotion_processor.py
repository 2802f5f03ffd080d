"""Ties emotion detection to playlist recommendation."""

from __future__ import annotations

import sys

from .emotion_detector import EmotionDetector
from .logger import EmotionLogger
from .playlist_manager import PlaylistManager


class EmotionProcessor:
    """Detects the emotion on an image, prints it with a playlist and logs it."""

    def __init__(
        self,
        playlist_manager: PlaylistManager,
        emotion_detector: EmotionDetector,
        logger: EmotionLogger | None = None,
    ) -> None:
        self.playlist_manager = playlist_manager
        self.emotion_detector = emotion_detector
        self.logger = logger

    def process_image(self, image_path) -> None:
        """Process one image; errors are reported on standard error, not raised."""
        try:
            emotion, probability = self.emotion_detector.detect_from_image(image_path)
            percent = probability * 100
            print(f"Detected emotion: {emotion} ({percent:g} %)")
            print(f"Recommended playlist: {self.playlist_manager.get_playlist(emotion)}")
            if self.logger is not None:
                self.logger.log_emotion(emotion, percent)
        except Exception as exc:  # every failure of one image is reported and skipped
            print(f"Error: {exc}", file=sys.stderr)