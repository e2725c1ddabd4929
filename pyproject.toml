[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vidpdf"
version = "0.1.0"
description = "Turn frames from a video at chosen timestamps into a paginated PDF"
requires-python = ">=3.10"
dependencies = []
keywords = ["video", "pdf", "screenshot", "ffmpeg", "frames"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video :: Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
vidpdf = "vidpdf.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["vidpdf"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
