[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "emotionplayer"
version = "1.0.0"
description = "Recognise the emotion on a face image and recommend a matching music playlist"
requires-python = ">=3.10"
keywords = ["emotion", "playlist", "onnx", "ferplus", "music", "recommendation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Natural Language :: Russian",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Players",
    "Topic :: Scientific/Engineering :: Image Recognition",
]
dependencies = [
    "numpy",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
emotion-player = "emotionplayer.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["emotionplayer"]

[tool.pytest.ini_options]
addopts = "-ra"
