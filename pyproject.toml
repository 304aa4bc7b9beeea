[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ddnskit"
version = "0.1.0"
description = "Building blocks for dynamic DNS updaters: IP detection, record reconciliation, domain expressions and health-check pings"
requires-python = ">=3.10"
dependencies = [
    "dnspython",
]
keywords = ["ddns", "dynamic-dns", "dns", "dns-over-https", "ip-detection", "healthchecks"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ddnskit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
