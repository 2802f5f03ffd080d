"""Appending log of detected emotions with timestamps."""

from __future__ import annotations

from datetime import datetime


class EmotionLogger:
    """Appends detected emotions and their confidence to a log file."""

    def __init__(self, log_file_path) -> None:
        try:
            self._file = open(log_file_path, "a", encoding="utf-8")
        except OSError as exc:
            raise OSError(f"Failed to open log file: {log_file_path}") from exc

    def log_emotion(self, emotion: str, confidence: float) -> None:
        """Write one record; does nothing once the logger is closed."""
        if self._file.closed:
            return
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        self._file.write(
            f"Emotion: {emotion}\n"
            f"Confidence: {confidence:.4f}\n"
            f"Processed at: {stamp}\n\n"
        )
        self._file.flush()

    def close(self) -> None:
        """Close the log file."""
        if not self._file.closed:
            self._file.close()

    def __enter__(self) -> EmotionLogger:
        return self

    def __exit__(self, *args) -> None:
        self.close()