"""
taskdesk: multi-tenant task tracking.

Packages:
- core: identity, visibility filter, filter composer, board session
- tasks: data models, SQLite entity store, change feed, write API
- cli / connectors: slash-command console
"""

__version__ = "0.1.0"
