"""
Service layer for the Excel records system.

This package contains framework-agnostic mapping logic that can be used
by the CLI, the API, or any other interface.
"""

__version__ = "1.0.0"
