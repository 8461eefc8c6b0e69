"""
Browser tab sources.
"""

from .source import LiveTab, TabId, TabSource, TabSourceError
from .devtools import DevToolsTabSource

__all__ = [
    "LiveTab",
    "TabId",
    "TabSource",
    "TabSourceError",
    "DevToolsTabSource",
]
