[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gmsm"
version = "0.1.0"
description = "SM2 public-key cryptography and SM3 hashing per the Chinese national standards"
requires-python = ">=3.10"
keywords = ["sm2", "sm3", "cryptography", "elliptic-curve", "hash", "signature", "encryption"]
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
    "Topic :: Security :: Cryptography",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gmsm"]

[tool.pytest.ini_options]
addopts = "-ra"
