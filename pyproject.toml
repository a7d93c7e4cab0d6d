[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "airplaytv"
version = "0.1.0"
description = "Video source aggregation library: catalogue listing, search, details, playable stream lookup and websocket remote-control relaying."
requires-python = ">=3.10"
keywords = ["video", "m3u8", "hls", "scraper", "aggregator", "websocket", "remote-control"]
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
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    "Topic :: Multimedia :: Video",
]
dependencies = [
    "requests>=2.31",
    "beautifulsoup4>=4.12",
    "cryptography>=41",
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=8",
    "pytest-asyncio>=0.23",
    "responses>=0.25",
    "httpx>=0.27",
]

[tool.hatch.build.targets.wheel]
packages = ["airplaytv"]

[tool.hatch.build.targets.sdist]
include = ["airplaytv", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
warn_unused_ignores = true
