"""
OrgDesk API client

Async client library and ``orgdesk`` command line tool for the OrgDesk
organizations API.
"""

__version__ = "0.1.0"
