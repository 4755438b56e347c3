[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gdbdiff"
version = "0.1.0"
description = "Differential testing of emulators against QEMU over the GDB remote serial protocol, with emulator helper primitives"
requires-python = ">=3.10"
dependencies = []
keywords = ["emulator", "difftest", "qemu", "gdb", "remote-protocol", "instruction-decoding"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Software Development :: Testing",
    "Topic :: Software Development :: Debuggers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["gdbdiff"]

[tool.pytest.ini_options]
addopts = "-ra"
