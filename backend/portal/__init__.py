"""VM Portal backend: control a fixed set of Azure resources over HTTP."""

__version__ = "1.0.0"
