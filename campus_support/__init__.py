"""Campus support platform: shared request lifecycle core with thin role views."""

__version__ = "0.1.0"
