[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nes6502"
version = "0.1.0"
description = "An emulator core for the MOS 6502 processor as used in the NES"
requires-python = ">=3.10"
dependencies = []
keywords = ["6502", "nes", "emulator", "cpu", "mos6502"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nes6502"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
