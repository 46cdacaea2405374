[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "authorino"
version = "0.1.0"
description = "Building blocks for an external authorization service: JSON selectors and expressions, host index, response evaluators, metadata fetchers and metrics"
requires-python = ">=3.10"
keywords = ["authorization", "authentication", "jwt", "oauth2", "uma", "json", "envoy"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Security",
    "Typing :: Typed",
]
dependencies = [
    "requests",
    "pyjwt",
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["authorino"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
