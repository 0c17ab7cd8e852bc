[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hackpadfs"
version = "0.1.0"
description = "File systems behind one small interface: a key-value backed file system, sub-directory views and the host operating system's files."
requires-python = ">=3.10"
dependencies = []
keywords = ["filesystem", "fs", "key-value", "virtual-filesystem", "blob"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hackpadfs"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
