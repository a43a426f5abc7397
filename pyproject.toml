[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "redirex"
version = "0.1.0"
description = "Header-based HTTP redirection: a receptor front server, request rules and a scoped IoC container"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "http",
    "redirect",
    "rules",
    "ioc",
    "dependency-injection",
    "command-pattern",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
redirex-receptor = "redirex.receptor:main"

[tool.hatch.build.targets.wheel]
packages = ["redirex"]

[tool.hatch.build.targets.sdist]
include = ["redirex", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
