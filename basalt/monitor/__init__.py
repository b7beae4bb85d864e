"""
Monitor Module

Traces of feature runs, and the logs recorded inside them, sent to Basalt
monitoring.
"""

from .client import MonitorSDK
from .logs import BaseLog, Generation, Span
from .trace import Trace

__all__ = ["BaseLog", "Generation", "MonitorSDK", "Span", "Trace"]
