"""Services module for data operations.

Holds the persistent record store the pipeline reads from and writes to.
"""

from brightchoice.services.spec_store import SpecStore, SQLAlchemySpecStore

__all__ = [
    "SpecStore",
    "SQLAlchemySpecStore",
]
