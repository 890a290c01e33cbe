[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "merge-gatekeeper"
version = "1.0.0"
description = "Block pull request merges until every other status check and check run on a ref has passed"
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = ["github", "actions", "ci", "status checks", "check runs", "merge", "pull request"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Quality Assurance",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
merge-gatekeeper = "merge_gatekeeper.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["merge_gatekeeper"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
