[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "k8srules"
version = "0.1.0"
description = "Terminal dashboard that checks a Kubernetes application's deployment, service, pods and KrakenD routing against a set of rules"
requires-python = ">=3.10"
keywords = ["kubernetes", "istio", "krakend", "compliance", "dashboard", "tui"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console :: Curses",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "requests",
    "pyyaml",
    "urwid",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
k8srules = "k8srules.app:main"

[tool.hatch.build.targets.wheel]
packages = ["k8srules"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
