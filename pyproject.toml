[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinynet"
version = "0.1.0"
description = "A small user-space networking toolkit: packet parsing and serialization, Internet checksums, file descriptors, sockets, TUN/TAP devices and a poll-based event loop."
requires-python = ">=3.10"
dependencies = []
keywords = ["networking", "ipv4", "ethernet", "arp", "checksum", "tun", "tap", "sockets", "event-loop", "packets"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Internet",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tinynet"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
