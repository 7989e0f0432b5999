[build-system]
requires = ["setuptools>=68", "wheel"]
build-backend = "setuptools.build_meta"

[project]
name = "peercache"
version = "0.1.0"
description = "A small distributed in-memory cache with LRU eviction, consistent hashing, request coalescing and HTTP peers"
requires-python = ">=3.10"
dependencies = [
    "pyyaml>=6.0",
]
keywords = [
    "cache",
    "distributed",
    "lru",
    "consistent-hashing",
    "singleflight",
    "http",
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
    "Topic :: System :: Distributed Computing",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
peercache = "peercache.server:main"
peercache-register = "peercache.register:main"

[tool.setuptools.packages.find]
include = ["peercache*"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
