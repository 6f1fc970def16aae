[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "canbits"
version = "0.1.0"
description = "CAN bit-timing calculator and a TCP front end for the SocketCAN broadcast manager"
requires-python = ">=3.10"
dependencies = []
keywords = ["can", "can-fd", "socketcan", "bit-timing", "bitrate", "broadcast-manager", "automotive"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Manufacturing",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems :: Controller Area Network (CAN)",
    "Topic :: Utilities",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
can-calc-bit-timing = "canbits.calc_cli:main"
bcmserver = "canbits.bcm:main"

[tool.hatch.build.targets.wheel]
packages = ["canbits"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
strict = true
