[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "teachos"
version = "0.1.0"
description = "Building blocks of a small teaching operating system: paging, locks, system call dispatch, a shell parser and user utilities"
requires-python = ">=3.10"
dependencies = []
keywords = ["operating-system", "teaching", "paging", "x86", "shell", "malloc", "elf"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: System :: Operating System Kernels",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[project.scripts]
teachos-wc = "teachos.wc:main"

[tool.hatch.build.targets.wheel]
packages = ["teachos"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
