[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fbwatch"
version = "0.1.0"
description = "File change watching with a polling fallback, plus builders for Fluent Bit DaemonSet and RBAC manifests"
requires-python = ">=3.10"
dependencies = [
    "watchdog",
]
keywords = ["fluent-bit", "logging", "file-watching", "polling", "kubernetes", "daemonset"]
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
    "Topic :: System :: Logging",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["fbwatch"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
