"""
acl_dynamodb — DynamoDB storage backend for access-control lists.

Stores bucket/key/value-set triples as DynamoDB rows whose value set is a
collection of boolean attributes, with one table per bucket or one shared
table keyed by (key, bucket).
"""

from acl_dynamodb.backend import DynamoDBBackend
from acl_dynamodb.config import BackendConfig
from acl_dynamodb.exceptions import (
    AclBackendError,
    InvalidBucketError,
    ReservedKeyError,
    RetriesExhausted,
    TransactionStateError,
)
from acl_dynamodb.transaction import Transaction, TransactionState

__all__ = [
    "AclBackendError",
    "BackendConfig",
    "DynamoDBBackend",
    "InvalidBucketError",
    "ReservedKeyError",
    "RetriesExhausted",
    "Transaction",
    "TransactionState",
    "TransactionStateError",
]
