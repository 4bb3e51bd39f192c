[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "matchengine"
version = "0.1.0"
description = "A price-level limit order book with FIFO and pro-rata matching, a FIX gateway and UDP engine messaging"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "order book",
    "matching engine",
    "pro-rata",
    "fifo",
    "fix",
    "trading",
    "exchange",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
matchengine-engine = "matchengine.engine_io:main"
matchengine-gateway = "matchengine.gateway:main"
matchengine-client = "matchengine.client:main"
matchengine-market-data = "matchengine.market_data:main"

[tool.hatch.build.targets.wheel]
packages = ["matchengine"]

[tool.hatch.build.targets.sdist]
include = ["matchengine", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
