[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tsar"
version = "0.1.0"
description = "Library for collecting module statistics into a data file and reporting them to check lines, TCP collectors, a database or Nagios"
requires-python = ">=3.10"
dependencies = []
keywords = ["monitoring", "statistics", "sar", "metrics", "nagios"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
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
packages = ["tsar"]

[tool.pytest.ini_options]
addopts = "-ra"
