"""gvtab — open files in a shared, reusable gvim server."""

__version__ = "0.1.0"
