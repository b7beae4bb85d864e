"""Version information for the Basalt SDK."""

import sys

__version__ = "1.0.0"

SDK_NAME = "basalt-python"
SDK_TYPE = "python"
# Runtime the SDK runs on ("cpython", "pypy", ...)
SDK_TARGET = sys.implementation.name
