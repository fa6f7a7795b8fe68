"""Steam Workshop collection watcher."""

__version__ = "0.1.0"

__all__ = ["__version__"]
