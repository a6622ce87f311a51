[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "metricsserver"
version = "0.1.0"
description = "Kubernetes resource metrics building blocks: kubelet scraping and decoding, metrics views, table rendering and option handling."
requires-python = ">=3.10"
dependencies = []
keywords = ["kubernetes", "metrics", "kubelet", "monitoring", "prometheus", "resource-metrics"]
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
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["metricsserver"]

[tool.hatch.build.targets.sdist]
include = ["metricsserver", "tests", "README.md"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
