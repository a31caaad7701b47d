"""Terminal console for Jenkins build servers."""

__version__ = "0.1.0"
