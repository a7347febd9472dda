[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tulipgen"
version = "0.1.0"
description = "Machine-code emitters, argument layouts and hook-chain bookkeeping for function hooking on x86, x86-64, ARMv7 and ARMv8"
requires-python = ">=3.10"
dependencies = []
keywords = ["assembler", "x86", "x86-64", "arm", "aarch64", "thumb", "calling-convention", "hooking", "codegen"]
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
    "Topic :: Software Development :: Assemblers",
    "Topic :: Software Development :: Code Generators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tulipgen"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
