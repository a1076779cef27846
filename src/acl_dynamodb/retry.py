"""
acl_dynamodb.retry — Quadratic backoff for unprocessed batch items.

Retry n (1-based) waits n**2 * base_delay seconds. With the default base of
1.0 that is 1s, 4s, 9s, ... The number of retries is bounded by
max_retries; None keeps retrying until the store drains the batch.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError

from acl_dynamodb.config import DEFAULT_MAX_READ_RETRIES, DEFAULT_RETRY_BASE_DELAY
from acl_dynamodb.exceptions import RetriesExhausted

logger = Logger(service="acl-dynamodb")


def backoff_seconds(attempt: int, base_delay: float = DEFAULT_RETRY_BASE_DELAY) -> float:
    return float(attempt**2) * base_delay


def chunked(items: Sequence[Any], size: int) -> list[Sequence[Any]]:
    if size <= 0:
        raise ValueError("size must be > 0")
    return [items[i : i + size] for i in range(0, len(items), size)]


def is_missing_table(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "ResourceNotFoundException"


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int | None = DEFAULT_MAX_READ_RETRIES
    base_delay: float = DEFAULT_RETRY_BASE_DELAY
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    def wait(self, attempt: int, *, operation: str, table_name: str, unprocessed_count: int) -> None:
        """Sleep before retry number `attempt`, or raise RetriesExhausted past the ceiling."""
        if self.max_retries is not None and attempt > self.max_retries:
            logger.error(
                "Batch request did not drain within retry limit",
                operation=operation,
                table_name=table_name,
                unprocessed_count=unprocessed_count,
                attempts=attempt - 1,
            )
            raise RetriesExhausted(
                operation=operation,
                unprocessed_count=unprocessed_count,
                attempts=attempt - 1,
            )
        delay = backoff_seconds(attempt, self.base_delay)
        logger.warning(
            "Store returned unprocessed items; retrying",
            operation=operation,
            table_name=table_name,
            unprocessed_count=unprocessed_count,
            attempt=attempt,
            delay_seconds=delay,
        )
        self.sleep(delay)
