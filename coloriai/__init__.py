"""ColoriAI: seasonal color analysis backend."""

__version__ = "0.3.0"
