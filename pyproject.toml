[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "memintro"
version = "0.1.0"
description = "Decode counted UTF-16 strings and PE image headers held in memory snapshots"
requires-python = ">=3.10"
dependencies = []
keywords = ["memory", "introspection", "forensics", "pe", "windows", "unicode-string"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Information Technology",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["memintro"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
