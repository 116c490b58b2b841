"""
Database Agent API
==================

HTTP service exposing the database agent.
"""

__version__ = "0.1.0"
