"""
Schemas shared between the OrgDesk API server and its client.
"""

__version__ = "0.1.0"
