"""
Data scoping: policy-to-filter compilation and storage backends.

Available backends:
- memory: evaluate against mapping records
- document: Mongo-style query documents
- sql: SQLAlchemy clauses (apply_to_query for Select statements)
"""

from .compiler import PolicyFilterCompiler
from .document import DocumentFilterBackend
from .memory import MemoryFilterBackend
from .sql import SQLAlchemyFilterBackend

__all__ = [
    "PolicyFilterCompiler",
    "DocumentFilterBackend",
    "MemoryFilterBackend",
    "SQLAlchemyFilterBackend",
]
