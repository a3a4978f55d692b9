[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sidepool"
version = "0.1.0"
description = "Building blocks for a decentralized mining sidechain node: handshake hashing, peer lists, main chain tracking, daemon RPC replies and stats files"
requires-python = ">=3.10"
dependencies = [
    "pycryptodome",
]
keywords = ["p2p", "mining", "sidechain", "pool", "keccak", "peers"]
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
    "Topic :: Internet",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["sidepool"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
