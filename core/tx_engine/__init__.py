"""Transaction signing and dispatch."""

from .builder import TransactionBuilder, TransactionDescriptor

__all__ = ["TransactionBuilder", "TransactionDescriptor"]
