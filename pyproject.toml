[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nexharness"
version = "0.1.0"
description = "Building blocks for test runners: partitioning, test-list metadata, cargo command lines, exit codes and a data-driven test harness"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "testing",
    "test-runner",
    "harness",
    "data-driven",
    "partitioning",
    "sharding",
    "cargo",
]
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
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nexharness"]

[tool.hatch.build.targets.sdist]
include = ["nexharness", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
