"""Glue between dataset commits and the transactions that carry them."""

from __future__ import annotations

from ..chain.tx import PreparedTransaction
from ..dataset import PreparedOperation


def track_operation(operation: PreparedOperation) -> PreparedTransaction:
    """
    Return the transaction of a commit, wired back to the operation.

    The receipt confirms the operation; an executor error rejects it so the
    covered fields stay dirty.
    """
    tx: PreparedTransaction = operation.descriptor
    tx.callbacks.on_receipt.append(lambda receipt: operation.confirm())
    tx.callbacks.on_error.append(operation.reject)
    return tx
