"""slmwatch — health indicator for snapshot lifecycle management (SLM)."""

__version__ = "0.1.0"
