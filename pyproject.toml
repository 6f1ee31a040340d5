[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kdbxkit"
version = "0.1.0"
description = "Building blocks for KDBX password database files: payload ciphers, protected-field streams, block framing, binaries and the format 4 inner header"
requires-python = ">=3.10"
dependencies = [
    "cryptography",
]
keywords = ["kdbx", "keepass", "password", "database", "cipher", "salsa20", "chacha20", "twofish"]
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
    "Topic :: Security :: Cryptography",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["kdbxkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
