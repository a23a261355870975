"""
File Conversion Service package.

This module provides a FastAPI application exposing REST endpoints that
convert uploaded files between formats using pluggable converters. The list
of available conversions is served at `/api/conversions`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
