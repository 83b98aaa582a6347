"""Splice: reconcile model-proposed rewrites into editor buffers."""

__version__ = "0.1.0"
