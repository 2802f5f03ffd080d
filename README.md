# emotionplayer

Finds the emotion on a face in an image and suggests a playlist that suits it.

A face image is classified with a FER+ style ONNX model into one of eight emotions: Neutral, Happiness, Surprise, Sadness, Anger, Disgust, Fear and Contempt. The playlist mapped to that emotion is then looked up in a plain text file.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Playlist file

Each line holds one mapping of the form `emotion:playlist name`. Everything before the first `:` is the emotion and everything after it is the playlist:

```
Happiness:Pop Hits
Sadness:Chill Vibes
Neutral:Lo-fi Beats
```

Emotion names are case-sensitive and must match the labels above. An emotion with no mapping gets `Default Playlist`. If a line has no `:`, loading stops with `PlaylistLoadError`; the lines before it stay loaded. When a file has loaded, the mappings are printed sorted by emotion.

## Command line

```
emotion-player -m <model_file> -p <playlists_file> (-i <image> | -d <directory> | -q) [-l <log_file>]
```

- `-m`: path to the ONNX model (required)
- `-p`: path to the playlist file (required)
- `-i`: process a single image
- `-d`: process every regular file in a directory, in name order
- `-q`: interactive mode. Type image paths one per line. Enter `q` or `quit`, or end the input, to stop.
- `-l`: also append each result to a log file
- `-h`, `--help`: show the help text

Choose exactly one of `-i`, `-d` and `-q`. Invalid arguments, an unreadable playlist file or an unreadable model print an error and the help text, and the command exits with status 1.

For each image the command prints the detected emotion with its probability as a percentage, followed by the recommended playlist. If one image fails, the error goes to standard error and processing continues with the next image.

Examples:

```
emotion-player -m model.onnx -p playlists.txt -i image.png
emotion-player -m model.onnx -p playlists.txt -d photos
emotion-player -m model.onnx -p playlists.txt -l log.txt -q
```

The program's help text and status messages are in Russian.

## Log file

Each result is appended to the log file as a record like this:

```
Emotion: Happiness
Confidence: 87.1234
Processed at: 2025-01-31 12:00:00
```

When the log is written through the command or `EmotionProcessor`, the confidence is a percentage.

## Library use

```python
from emotionplayer.emotion_detector import EmotionDetector
from emotionplayer.playlist_manager import PlaylistManager
from emotionplayer.logger import EmotionLogger
from emotionplayer.emotion_processor import EmotionProcessor

manager = PlaylistManager()
manager.load_mappings("playlists.txt")

detector = EmotionDetector()
detector.load_model("emotion_ferplus.onnx")

emotion, probability = detector.detect_from_image("face.png")  # probability in 0..1
print(emotion, probability, manager.get_playlist(emotion))

with EmotionLogger("emotions.log") as logger:
    EmotionProcessor(manager, detector, logger).process_image("face.png")
```

- `EmotionDetector.detect_from_image` raises `ImageLoadError` if the image cannot be read.
- `EmotionDetector.preprocess_image` turns a grayscale array into a 1×1×64×64 float blob scaled to [0, 1].
- `emotionplayer.onnx_net.read_net_from_onnx` loads a model into a `Network`, and `Network.forward` runs that model on a blob. Both raise `ModelError` on failure.
- `emotionplayer.utils` provides `softmax`, `file_exists`, `parse_arguments`, `help_text`, `show_help` and `get_filenames_in_directory`.

## Limitations

- No music is played. The package only names the recommended playlist.
- Models run on the CPU with numpy through a small built-in evaluator. It supports common feed-forward operators: Conv, pooling, Gemm, MatMul, activations, BatchNormalization, reshaping and similar. A model that uses any other operator is rejected with `ModelError`.
- No face detection is done. The whole image is treated as the face.