"""docindex - index local documents and search them by meaning."""

__version__ = "0.1.0"
