[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "scservo"
version = "0.1.0"
description = "Control SCSCL, SMS/STS and SMSBL serial bus servos over a serial port"
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = ["servo", "serial", "robotics", "scscl", "sms", "sts", "smsbl", "bus servo"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Hardware",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
scservo = "scservo.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["scservo"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
