"""Helper functions: softmax, file checks, command-line parsing and directory listing."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

_HELP_TEXT = (
    "Emotion Player\n"
    "Использование:\n"
    "  -h, --help          Показывает это сообщение\n"
    "  -m <model_file>     [обязательный параметр] Путь к файлу с моделью\n"
    "  -p <playlists_file> [обязательный параметр] Путь к файлу с плейлистами\n"
    "  -i <image_file>     Обрабатывает изображение и выводит рекомендованный плейлист\n"
    "  -d <directory>      Обрабатывает каждое изображение из папки и выводит "
    "рекомендованный плейлист для каждой\n"
    "  -q                  Бесконечный режим работы\n"
    "  -l <logger_file>    Дополнительная запись результатов в лог-файл\n"
    "Примеры:\n"
    "  emotion_player -m model.onnx -p playlists.txt -i image.png\n"
    "  emotion_player -m model.onnx -p playlists.txt -d directory\n"
    "  emotion_player -m model.onnx -p playlists.txt -l log.txt -q\n"
)

# Options that take a value: option -> (attribute, message when the value is missing)
_VALUE_OPTIONS = {
    "-m": ("model_file", "Не указан файл модели после -m"),
    "-p": ("playlists_file", "Не указан файл плейлистов после -p"),
    "-i": ("image_file", "Не указан файл изображения после -i"),
    "-d": ("directory", "Не указана директория после -d"),
    "-l": ("logger_file", "Не указан лог-файл после -l"),
}

_REQUIRED = (("-m", "model_file"), ("-p", "playlists_file"))


class ArgumentError(ValueError):
    """Raised when the command-line arguments are invalid."""


@dataclass
class ProgramOptions:
    """Program settings taken from the command line."""

    model_file: str = ""
    playlists_file: str = ""
    image_file: str = ""
    directory: str = ""
    logger_file: str = ""
    infinite_mode: bool = False
    help_requested: bool = False


def softmax(logits) -> np.ndarray:
    """Return the softmax of ``logits`` along the last axis, keeping the shape."""
    arr = np.asarray(logits)
    if arr.ndim == 0:
        raise ValueError("softmax needs at least a one-dimensional input")
    if not np.issubdtype(arr.dtype, np.floating):
        arr = arr.astype(np.float32)
    stabilized = arr - arr.max(axis=-1, keepdims=True)
    exp_scores = np.exp(stabilized)
    return exp_scores / exp_scores.sum(axis=-1, keepdims=True)


def file_exists(path) -> bool:
    """Return True if ``path`` can be stat'ed."""
    try:
        os.stat(path)
    except (OSError, ValueError):
        return False
    return True


def help_text() -> str:
    """Return the usage text."""
    return _HELP_TEXT


def show_help() -> None:
    """Write the usage text to standard output and flush it."""
    stream = sys.stdout
    stream.write(help_text())
    stream.flush()


def parse_arguments(argv: Sequence[str] | None = None) -> ProgramOptions:
    """Parse command-line arguments (without the program name).

    Raises ArgumentError on unknown options, missing values, missing
    required options, or when not exactly one mode (-i, -d, -q) is chosen.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    options = ProgramOptions()
    provided: set[str] = set()

    it = iter(args)
    for arg in it:
        if arg in ("-h", "--help"):
            options.help_requested = True
            return options
        if arg == "-q":
            options.infinite_mode = True
        elif arg in _VALUE_OPTIONS:
            attribute, missing_message = _VALUE_OPTIONS[arg]
            try:
                value = next(it)
            except StopIteration:
                raise ArgumentError(missing_message) from None
            setattr(options, attribute, value)
            provided.add(arg)
        else:
            raise ArgumentError(f"Неизвестный параметр: {arg}")

    for flag, _attribute in _REQUIRED:
        if flag not in provided:
            raise ArgumentError(f"Обязательный параметр {flag} не указан")

    modes = sum(
        (bool(options.image_file), bool(options.directory), options.infinite_mode)
    )
    if modes == 0:
        raise ArgumentError("Нужно выбрать 1 режим работы: -i -d -q")
    if modes > 1:
        raise ArgumentError("Нужно выбрать ровно 1 режим работы: -i -d -q")
    return options


def get_filenames_in_directory(directory_path) -> list[str]:
    """Return the names of the regular files in a directory, sorted."""
    with os.scandir(directory_path) as entries:
        return sorted(entry.name for entry in entries if entry.is_file())