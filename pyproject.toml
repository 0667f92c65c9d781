[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sqlbun"
version = "0.1.0"
description = "Versioned SQL migrations for DB-API connections, with tag, time and identifier parsing helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["sql", "migrations", "database", "schema", "sqlite"]
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
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sqlbun"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
