"""
Dataset - lazily synchronized, dirty-tracked views over remote records.
"""

from .remotely_backed import (
    FieldBinding,
    FieldKind,
    LifecycleState,
    PreparedOperation,
    RemotelyBackedDataset,
)

__all__ = [
    "FieldBinding",
    "FieldKind",
    "LifecycleState",
    "PreparedOperation",
    "RemotelyBackedDataset",
]
