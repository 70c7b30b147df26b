[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "photolib"
version = "0.1.0"
description = "SQLite-backed photo library store: assets, ratings, rejects, trash, tags, collections and share links."
requires-python = ">=3.10"
dependencies = []
keywords = ["photo", "library", "sqlite", "collections", "tags", "sharing"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Multimedia :: Graphics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["photolib"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
