"""Batch-size and pattern optimizer for GregTech machine recipes, with a JSON socket server."""

__version__ = "2.7.2"