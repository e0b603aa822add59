"""
FastAPI application for the Excel records system.

This package contains the REST API for parsing uploaded workbooks into
typed records and exporting records as xlsx downloads.
"""

__version__ = "1.0.0"
