[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "envbase"
version = "0.1.0"
description = "Modbus helpers and server, HJ212 table naming, network lookups and MySQL helpers for environmental monitoring data."
requires-python = ">=3.10"
keywords = ["modbus", "modbus-tcp", "modbus-rtu", "crc16", "hj212", "mysql", "monitoring"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Topic :: Database :: Front-Ends",
    "Topic :: System :: Networking",
]
dependencies = [
    "pymysql",
    "pyserial",
    "psutil",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["envbase"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
