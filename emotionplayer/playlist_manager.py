"""Mapping of emotions to music playlists."""

from __future__ import annotations

DEFAULT_PLAYLIST = "Default Playlist"


class PlaylistLoadError(Exception):
    """Raised when a playlist mapping file cannot be read or parsed."""


class PlaylistManager:
    """Loads ``emotion:playlist`` lines and looks playlists up by emotion."""

    def __init__(self) -> None:
        self._emotion_to_playlist: dict[str, str] = {}

    def load_mappings(self, filename) -> None:
        """Load mappings from a file of ``emotion:playlist`` lines and print them.

        Raises PlaylistLoadError if the file cannot be opened or a line has no
        colon. Lines read before a bad line stay loaded.
        """
        try:
            with open(filename, encoding="utf-8", newline="") as file:
                content = file.read()
        except OSError as exc:
            raise PlaylistLoadError(f"Cannot open playlist file: {filename}") from exc

        lines = content.split("\n")
        if lines[-1] == "":
            lines.pop()

        for number, line in enumerate(lines, start=1):
            emotion, delimiter, playlist = line.partition(":")
            if not delimiter:
                raise PlaylistLoadError(
                    f"{filename}:{number}: expected 'emotion:playlist', got {line!r}"
                )
            self._emotion_to_playlist[emotion] = playlist

        print(self.format_mappings(), end="")

    def get_playlist(self, emotion: str) -> str:
        """Return the playlist for ``emotion`` or the default playlist."""
        return self._emotion_to_playlist.get(emotion, DEFAULT_PLAYLIST)

    def format_mappings(self) -> str:
        """Return the loaded mappings as an aligned listing, sorted by emotion."""
        width = max((len(emotion) for emotion in self._emotion_to_playlist), default=0) + 2
        rows = "".join(
            f" - {(emotion + ':').ljust(width)}{playlist}\n"
            for emotion, playlist in sorted(self._emotion_to_playlist.items())
        )
        return f"\nLoaded playlists:\n\n{rows}\n"