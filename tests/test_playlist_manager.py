import pytest

from emotionplayer.playlist_manager import PlaylistLoadError, PlaylistManager


@pytest.fixture
def playlists_file(tmp_path):
    path = tmp_path / "test_playlists.txt"
    path.write_text("happy:Pop Hits\nsad:Chill Vibes\n", encoding="utf-8")
    return path


def test_load_valid_mappings(playlists_file):
    manager = PlaylistManager()
    manager.load_mappings(str(playlists_file))
    assert manager.get_playlist("sad") == "Chill Vibes"


def test_get_existing_playlist(playlists_file):
    manager = PlaylistManager()
    manager.load_mappings(playlists_file)
    assert manager.get_playlist("happy") == "Pop Hits"


def test_get_non_existing_playlist(playlists_file):
    manager = PlaylistManager()
    manager.load_mappings(playlists_file)
    assert manager.get_playlist("unknown") == "Default Playlist"


def test_load_non_existing_file(tmp_path):
    manager = PlaylistManager()
    with pytest.raises(PlaylistLoadError):
        manager.load_mappings(tmp_path / "nonexistent_file.txt")


def test_lookup_is_case_sensitive(playlists_file):
    manager = PlaylistManager()
    manager.load_mappings(playlists_file)
    assert manager.get_playlist("Happy") == "Default Playlist"


def test_line_without_colon_fails_but_keeps_earlier_lines(tmp_path):
    path = tmp_path / "bad.txt"
    path.write_text("happy:Pop Hits\nbroken line\nsad:Chill Vibes\n", encoding="utf-8")
    manager = PlaylistManager()
    with pytest.raises(PlaylistLoadError):
        manager.load_mappings(path)
    assert manager.get_playlist("happy") == "Pop Hits"
    assert manager.get_playlist("sad") == "Default Playlist"


def test_blank_line_is_an_error(tmp_path):
    path = tmp_path / "blank.txt"
    path.write_text("happy:Pop Hits\n\n", encoding="utf-8")
    with pytest.raises(PlaylistLoadError):
        PlaylistManager().load_mappings(path)


def test_only_first_colon_splits(tmp_path):
    path = tmp_path / "colon.txt"
    path.write_text("happy:Mix: Part 2", encoding="utf-8")
    manager = PlaylistManager()
    manager.load_mappings(path)
    assert manager.get_playlist("happy") == "Mix: Part 2"


def test_later_line_overrides_earlier(tmp_path):
    path = tmp_path / "dup.txt"
    path.write_text("happy:First\nhappy:Second\n", encoding="utf-8")
    manager = PlaylistManager()
    manager.load_mappings(path)
    assert manager.get_playlist("happy") == "Second"


def test_format_mappings_aligns_and_sorts(playlists_file):
    manager = PlaylistManager()
    manager.load_mappings(playlists_file)
    assert manager.format_mappings() == (
        "\nLoaded playlists:\n\n"
        " - happy: Pop Hits\n"
        " - sad:   Chill Vibes\n"
        "\n"
    )


def test_load_prints_mappings(playlists_file, capsys):
    manager = PlaylistManager()
    manager.load_mappings(playlists_file)
    assert capsys.readouterr().out == manager.format_mappings()


def test_empty_file_loads_nothing(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("", encoding="utf-8")
    manager = PlaylistManager()
    manager.load_mappings(path)
    assert manager.format_mappings() == "\nLoaded playlists:\n\n\n"