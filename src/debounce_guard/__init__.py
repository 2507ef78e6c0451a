"""
Distributed debounce guard for Python web applications.

This package suppresses duplicate initiations of an operation by the same
caller within a configurable window, coordinating through a shared lock
store so that multi-instance deployments are covered.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
