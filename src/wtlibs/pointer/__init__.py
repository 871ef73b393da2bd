"""
Pointer - lazily resolved URI-addressed documents.
"""

from .storage_pointer import DEFAULT_MAX_DEPTH, FieldSchema, StoragePointer, normalize_schema

__all__ = ["DEFAULT_MAX_DEPTH", "FieldSchema", "StoragePointer", "normalize_schema"]
