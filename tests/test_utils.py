import numpy as np
import pytest

from emotionplayer.utils import (
    ArgumentError,
    ProgramOptions,
    file_exists,
    get_filenames_in_directory,
    help_text,
    parse_arguments,
    show_help,
    softmax,
)


# ---------- softmax ----------

def test_softmax_simple_vector():
    probs = softmax(np.array([[1.0, 2.0, 3.0]], dtype=np.float32))
    assert probs.sum() == pytest.approx(1.0, abs=1e-5)
    assert probs[0, 2] > probs[0, 1]
    assert probs[0, 1] > probs[0, 0]


def test_softmax_all_zeros():
    probs = softmax(np.zeros((1, 3), dtype=np.float32))
    for value in probs[0]:
        assert value == pytest.approx(1.0 / 3.0, abs=1e-5)


def test_softmax_keeps_shape_and_dtype():
    logits = np.array([[0.5, -1.0, 2.0, 0.0]], dtype=np.float32)
    probs = softmax(logits)
    assert probs.shape == logits.shape
    assert probs.dtype == np.float32


def test_softmax_is_shift_invariant_and_stable():
    probs = softmax([[1000.0, 1001.0, 1002.0]])
    reference = softmax([[0.0, 1.0, 2.0]])
    assert np.all(np.isfinite(probs))
    np.testing.assert_allclose(probs, reference, rtol=1e-6)


def test_softmax_rows_are_independent():
    probs = softmax([[1.0, 2.0], [5.0, 5.0]])
    np.testing.assert_allclose(probs.sum(axis=1), [1.0, 1.0], rtol=1e-6)
    assert probs[1, 0] == pytest.approx(0.5)


def test_softmax_rejects_scalar():
    with pytest.raises(ValueError):
        softmax(3.0)


# ---------- file_exists ----------

def test_file_exists_existing_file(tmp_path):
    path = tmp_path / "test_temp_file.txt"
    path.write_text("test\n")
    assert file_exists(str(path)) is True


def test_file_exists_non_existing_file(tmp_path):
    assert file_exists(str(tmp_path / "file_that_should_not_exist_123456.txt")) is False


def test_file_exists_directory(tmp_path):
    assert file_exists(tmp_path) is True


# ---------- help ----------

def test_help_text_lists_options():
    text = help_text()
    assert text.startswith("Emotion Player\n")
    assert "-m <model_file>" in text
    assert "-l <logger_file>" in text


def test_show_help_prints_help_text(capsys):
    show_help()
    assert capsys.readouterr().out == help_text()


# ---------- parse_arguments ----------

def test_parse_image_mode():
    options = parse_arguments(["-m", "model.onnx", "-p", "playlists.txt", "-i", "image.png"])
    assert options == ProgramOptions(
        model_file="model.onnx", playlists_file="playlists.txt", image_file="image.png"
    )


def test_parse_directory_mode():
    options = parse_arguments(["-m", "model.onnx", "-p", "playlists.txt", "-d", "directory"])
    assert options.directory == "directory"
    assert options.image_file == ""
    assert options.infinite_mode is False


def test_parse_infinite_mode_with_logger():
    options = parse_arguments(["-m", "model.onnx", "-p", "playlists.txt", "-l", "log.txt", "-q"])
    assert options.infinite_mode is True
    assert options.logger_file == "log.txt"


@pytest.mark.parametrize("flag", ["-h", "--help"])
def test_parse_help_stops_parsing(flag):
    options = parse_arguments([flag, "--bogus"])
    assert options.help_requested is True
    assert options.model_file == ""


def test_parse_unknown_option():
    with pytest.raises(ArgumentError, match="Неизвестный параметр: -x"):
        parse_arguments(["-x"])


@pytest.mark.parametrize(
    "flag, message",
    [
        ("-m", "Не указан файл модели после -m"),
        ("-p", "Не указан файл плейлистов после -p"),
        ("-i", "Не указан файл изображения после -i"),
        ("-d", "Не указана директория после -d"),
        ("-l", "Не указан лог-файл после -l"),
    ],
)
def test_parse_missing_value(flag, message):
    with pytest.raises(ArgumentError) as excinfo:
        parse_arguments([flag])
    assert str(excinfo.value) == message


def test_parse_missing_model():
    with pytest.raises(ArgumentError) as excinfo:
        parse_arguments(["-p", "playlists.txt", "-q"])
    assert str(excinfo.value) == "Обязательный параметр -m не указан"


def test_parse_missing_playlists():
    with pytest.raises(ArgumentError) as excinfo:
        parse_arguments(["-m", "model.onnx", "-q"])
    assert str(excinfo.value) == "Обязательный параметр -p не указан"


def test_parse_no_mode():
    with pytest.raises(ArgumentError) as excinfo:
        parse_arguments(["-m", "model.onnx", "-p", "playlists.txt"])
    assert str(excinfo.value) == "Нужно выбрать 1 режим работы: -i -d -q"


def test_parse_several_modes():
    with pytest.raises(ArgumentError) as excinfo:
        parse_arguments(["-m", "model.onnx", "-p", "playlists.txt", "-i", "a.png", "-q"])
    assert str(excinfo.value) == "Нужно выбрать ровно 1 режим работы: -i -d -q"


# ---------- get_filenames_in_directory ----------

def test_get_filenames_lists_only_regular_files(tmp_path):
    (tmp_path / "b.png").write_bytes(b"")
    (tmp_path / "a.jpg").write_bytes(b"")
    (tmp_path / "sub").mkdir()
    assert get_filenames_in_directory(str(tmp_path)) == ["a.jpg", "b.png"]


def test_get_filenames_empty_directory(tmp_path):
    assert get_filenames_in_directory(tmp_path) == []


def test_get_filenames_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        get_filenames_in_directory(tmp_path / "missing")