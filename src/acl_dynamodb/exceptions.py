"""
acl_dynamodb.exceptions — Errors raised by the ACL storage backend.

Store failures (botocore ClientError) are never wrapped; they reach the
caller unchanged. The types here cover input contract violations, retry
exhaustion on batched requests, and transaction misuse.
"""


class AclBackendError(RuntimeError):
    """Base class for errors raised by the backend itself."""


class ReservedKeyError(AclBackendError, ValueError):
    """Raised when a logical key collides with the primary-key attribute name."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Key name {key!r} is not allowed.")


class InvalidBucketError(AclBackendError, ValueError):
    """Raised when a bucket cannot be mapped onto a valid DynamoDB table name."""

    def __init__(self, bucket: str, table_name: str) -> None:
        self.bucket = bucket
        self.table_name = table_name
        super().__init__(
            f"Bucket {bucket!r} maps to invalid table name {table_name!r}; "
            "use shared-table mode for buckets outside [A-Za-z0-9_.-]"
        )


class RetriesExhausted(AclBackendError):
    """
    Raised when a batched request still has unprocessed items after the
    configured number of retries.

    Attributes:
        operation:         "batch_get" or "batch_write".
        unprocessed_count: Number of keys/requests the store never completed.
        attempts:          Retries performed before giving up.
    """

    def __init__(self, *, operation: str, unprocessed_count: int, attempts: int) -> None:
        self.operation = operation
        self.unprocessed_count = unprocessed_count
        self.attempts = attempts
        super().__init__(
            f"{operation} left {unprocessed_count} unprocessed item(s) after {attempts} retries"
        )


class TransactionStateError(AclBackendError):
    """Raised when a transaction is modified or executed outside the 'built' state."""
