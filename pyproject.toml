[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pmkvsim"
version = "0.1.0"
description = "A graph storage simulator over pluggable key-value engines, with linked-list recovery primitives"
requires-python = ">=3.10"
dependencies = []
keywords = ["key-value", "graph", "storage", "simulator", "benchmark", "doubly-linked-list"]
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
    "Topic :: Database",
    "Topic :: System :: Benchmark",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pmkvsim-bench = "pmkvsim.bench:main"

[tool.hatch.build.targets.wheel]
packages = ["pmkvsim"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
