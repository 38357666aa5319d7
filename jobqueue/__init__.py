"""
Database-backed Job Queue

Producers insert jobs into a shared table; workers claim them with a
conditional UPDATE, run them, and record completion, retry, or failure.
"""

__version__ = "1.0.0"
