[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "diggity"
version = "1.0.0"
description = "Software bill of materials building blocks: CPE generation, image file extraction, CycloneDX and GitHub dependency snapshot output, and SBOM attestation"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "sbom",
    "cpe",
    "cyclonedx",
    "dependency-graph",
    "container",
    "attestation",
    "security",
]
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
    "Topic :: Software Development :: Quality Assurance",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["diggity"]

[tool.hatch.build.targets.sdist]
include = ["diggity", "tests", "README.md"]

[tool.pytest.ini_options]
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
