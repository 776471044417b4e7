[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "snlds"
version = "0.1.0"
description = "Synthetic switching non-linear dynamical system data, HMM inference helpers and label-matched state accuracy"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "switching dynamical systems",
    "SNLDS",
    "hidden markov model",
    "synthetic data",
    "safetensors",
    "time series",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
snlds-gen = "snlds.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["snlds"]

[tool.hatch.build.targets.sdist]
include = [
    "snlds",
    "tests",
    "pyproject.toml",
    "README.md",
]

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
