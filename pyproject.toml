[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "slvnet"
version = "0.3.0"
description = "Client-side building blocks for the LLUDP virtual-world protocol: message templates, packet decoding, SOCKS5 UDP relay, reliability bookkeeping and a receive circuit"
requires-python = ">=3.10"
keywords = ["lludp", "udp", "socks5", "protocol", "virtual-world", "asyncio"]
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
    "Framework :: AsyncIO",
    "Topic :: Internet",
    "Topic :: System :: Networking",
]
dependencies = []

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["slvnet"]

[tool.pytest.ini_options]
addopts = "-ra"
