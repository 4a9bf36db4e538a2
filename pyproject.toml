[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gtbatch"
version = "2.7.2"
description = "Batch-size and pattern optimizer for GregTech machine recipes, served over a JSON socket"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "gregtech",
    "minecraft",
    "recipes",
    "overclock",
    "pattern",
    "optimizer",
]
classifiers = [
    "Development Status :: 5 - Production/Stable",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment :: Simulation",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
gtbatch = "gtbatch.server:main"

[tool.hatch.build.targets.wheel]
packages = ["gtbatch"]

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
