[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kubevuln"
version = "0.1.0"
description = "Storage repositories for vulnerability manifests, SBOMs, summaries and VEX documents of container workloads"
requires-python = ">=3.10"
dependencies = []
keywords = ["vulnerability", "sbom", "vex", "cve", "kubernetes", "container"]
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
    "Topic :: Security",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["kubevuln"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
