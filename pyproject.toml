[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "primus"
version = "0.1.0"
description = "Home automation hub library: servus protocol, push notification queue and web console pages"
requires-python = ">=3.10"
dependencies = []
keywords = ["home-automation", "sensors", "relays", "push-notifications", "web-console"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Home Automation",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["primus"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
