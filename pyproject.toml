[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ringio"
version = "0.1.0"
description = "A small single-threaded async runtime with timers, non-blocking sockets and Unix domain streams"
requires-python = ">=3.10"
dependencies = []
keywords = ["async", "runtime", "event-loop", "sockets", "timers", "coroutines"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ringio"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
