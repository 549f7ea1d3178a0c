"""
Database base models and utilities.

Re-exports the declarative Base so models can import it from one place.
"""

from core.database import Base  # type: ignore[reportUnusedImport]
