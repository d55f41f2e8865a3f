[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinytcp"
version = "0.1.0"
description = "A small, readable model of the TCP state machine: headers, handshakes, data transfer, retransmission and connection close."
requires-python = ">=3.10"
dependencies = []
keywords = ["tcp", "networking", "protocol", "state-machine", "handshake", "retransmission"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tinytcp-client = "tinytcp.cli:client_main"
tinytcp-server = "tinytcp.cli:server_main"
tinytcp-demo-open = "tinytcp.demo_open:main"
tinytcp-demo-close = "tinytcp.demo_close:main"

[tool.hatch.build.targets.wheel]
packages = ["tinytcp"]

[tool.hatch.build.targets.sdist]
include = ["tinytcp", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
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
