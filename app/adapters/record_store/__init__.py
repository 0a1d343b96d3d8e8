"""Remote record store adapter for the owner's bookmark repository."""

from app.adapters.record_store.client import (
    RecordStoreClient,
    RecordStoreError,
    RecordStoreRetryableError,
)
from app.adapters.record_store.gateway import RecordStoreGateway

__all__ = [
    "RecordStoreClient",
    "RecordStoreError",
    "RecordStoreGateway",
    "RecordStoreRetryableError",
]
