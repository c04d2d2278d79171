[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "surfacekit"
version = "0.1.0"
description = "Surface mesh segmentation, point cloud filtering and tool path sequencing"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "mesh",
    "segmentation",
    "point cloud",
    "filtering",
    "ply",
    "tool path",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Manufacturing",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["surfacekit"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
