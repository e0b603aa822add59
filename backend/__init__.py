"""
Backend package for the Excel records system.

Holds the record schema layer shared by the services, the API and the CLI.
"""
