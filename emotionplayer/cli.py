"""Command-line entry point of the emotion player."""

from __future__ import annotations

import sys
from collections.abc import Sequence

from .emotion_detector import EmotionDetector
from .emotion_processor import EmotionProcessor
from .logger import EmotionLogger
from .playlist_manager import PlaylistLoadError, PlaylistManager
from .utils import ProgramOptions, get_filenames_in_directory, parse_arguments, show_help


def process(processor: EmotionProcessor, options: ProgramOptions) -> None:
    """Run the processor in the mode chosen by ``options``."""
    if options.infinite_mode:
        while True:
            try:
                image_path = input("\nEnter image path (or 'q' to quit): ")
            except EOFError:
                break
            if image_path in ("q", "quit"):
                break
            processor.process_image(image_path)
    elif options.image_file:
        processor.process_image(options.image_file)
    elif options.directory:
        for file_name in get_filenames_in_directory(options.directory):
            path = f"{options.directory}/{file_name}"
            print(f"Попытка обработки {path}")
            processor.process_image(path)
            print()


def _announce(options: ProgramOptions) -> None:
    print("Запуск Emotion Player с параметрами:")
    print(f"Модель: {options.model_file}")
    print(f"Плейлисты: {options.playlists_file}")
    if options.image_file:
        print(f"Обработка изображения: {options.image_file}")
    elif options.directory:
        print(f"Обработка директории: {options.directory}")
    if options.infinite_mode:
        print("Бесконечный режим работы")
    if options.logger_file:
        print(f"Логирование в файл: {options.logger_file}")


def _run(options: ProgramOptions) -> None:
    _announce(options)

    playlist_manager = PlaylistManager()
    try:
        playlist_manager.load_mappings(options.playlists_file)
    except PlaylistLoadError as exc:
        raise RuntimeError("Не удалось загрузить плейлисты") from exc

    detector = EmotionDetector()
    detector.load_model(options.model_file)

    if options.logger_file:
        with EmotionLogger(options.logger_file) as logger:
            process(EmotionProcessor(playlist_manager, detector, logger), options)
    else:
        process(EmotionProcessor(playlist_manager, detector), options)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the program and return its exit status."""
    try:
        options = parse_arguments(argv)
        if options.help_requested:
            show_help()
            return 0
        _run(options)
    except Exception as exc:
        print(f"Ошибка: {exc}\n", file=sys.stderr)
        show_help()
        return 1

    print("Program finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())