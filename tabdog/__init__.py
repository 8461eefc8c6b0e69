"""
TabDog - suspend open browser tabs into saved sessions and bring them back.
"""

__version__ = "0.3.0"


class TabDogError(Exception):
    """Base class for all TabDog errors."""
    pass


__all__ = ["TabDogError", "__version__"]
