[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "staylink"
version = "0.1.0"
description = "Hotel availability caching, supplier search response processing and a circuit breaker"
requires-python = ">=3.10"
dependencies = []
keywords = ["hotel", "availability", "cache", "ttl", "circuit-breaker", "xml", "json"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["staylink"]

[tool.pytest.ini_options]
addopts = "-ra"
