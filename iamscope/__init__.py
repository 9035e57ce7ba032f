"""
iamscope - statement-based authorization with data-scoping filters.

See ``iamscope.auth`` for the public API.
"""

__version__ = "0.1.0"
