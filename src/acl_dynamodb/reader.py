"""
acl_dynamodb.reader — Single-row and multi-row value-set reads.

union() issues BatchGetItem requests of at most 100 keys. DynamoDB may
answer only part of a batch and hand back the rest as UnprocessedKeys;
those are reissued on their own after a quadratic backoff while rows
already returned are kept. A request-level ClientError aborts the read
and propagates, except ResourceNotFoundException: a bucket whose table
was never created simply has no values.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError

from acl_dynamodb.codec import decode_keys, encode_text
from acl_dynamodb.retry import RetryPolicy, chunked, is_missing_table
from acl_dynamodb.router import RESERVED_ATTRIBUTES, TableRouter

logger = Logger(service="acl-dynamodb")

BATCH_GET_LIMIT = 100


def value_names(rows: Iterable[dict[str, Any]]) -> list[str]:
    """Union of decoded attribute names across rows, minus the key attributes."""
    names: set[str] = set()
    for row in rows:
        names.update(decode_keys(row))
    return sorted(names - RESERVED_ATTRIBUTES)


class BatchedReader:
    def __init__(self, dynamodb: Any, router: TableRouter, *, retry_policy: RetryPolicy) -> None:
        self._dynamodb = dynamodb
        self._router = router
        self._retry = retry_policy

    def get(self, bucket: str, key: str | int) -> list[str]:
        table_name = self._router.table_name(bucket)
        item_key = self._router.item_key(bucket, encode_text(key))
        logger.debug("get_item", table_name=table_name, key=item_key)
        try:
            response = self._dynamodb.Table(table_name).get_item(Key=item_key)
        except ClientError as exc:
            if is_missing_table(exc):
                logger.debug("Table does not exist; empty value set", table_name=table_name)
                return []
            raise
        item = response.get("Item")
        if not item:
            return []
        return value_names([item])

    def union(self, bucket: str, keys: list[str | int]) -> list[str]:
        if not keys:
            return []
        table_name = self._router.table_name(bucket)
        # BatchGetItem rejects duplicate keys within one request.
        encoded = list(dict.fromkeys(str(encode_text(k)) for k in keys))
        item_keys = [self._router.item_key(bucket, k) for k in encoded]

        rows: list[dict[str, Any]] = []
        try:
            for chunk in chunked(item_keys, BATCH_GET_LIMIT):
                rows.extend(self._batch_get(table_name, list(chunk)))
        except ClientError as exc:
            if is_missing_table(exc):
                logger.debug("Table does not exist; empty value set", table_name=table_name)
                return []
            raise
        return value_names(rows)

    def _batch_get(self, table_name: str, item_keys: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Read every key in one chunk, reissuing unprocessed keys until none remain."""
        request_items: dict[str, Any] = {table_name: {"Keys": item_keys}}
        rows: list[dict[str, Any]] = []
        attempt = 0
        while True:
            logger.debug(
                "batch_get_item",
                table_name=table_name,
                key_count=len(request_items.get(table_name, {}).get("Keys", [])),
                attempt=attempt,
            )
            response = self._dynamodb.batch_get_item(RequestItems=request_items)
            rows.extend(response.get("Responses", {}).get(table_name, []))

            unprocessed = response.get("UnprocessedKeys") or {}
            if not unprocessed:
                return rows

            attempt += 1
            self._retry.wait(
                attempt,
                operation="batch_get",
                table_name=table_name,
                unprocessed_count=len(unprocessed.get(table_name, {}).get("Keys", [])),
            )
            request_items = unprocessed
