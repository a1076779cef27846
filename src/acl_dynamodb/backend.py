"""
acl_dynamodb.backend — DynamoDBBackend, the storage contract used by the ACL layer.

    backend = DynamoDBBackend(config=BackendConfig(prefix="acl_"))
    tx = backend.begin()
    backend.add(tx, "allows_blogs", "editor", ["view", "edit"])
    backend.end(tx)
    backend.get("allows_blogs", "editor")   # ["edit", "view"]

Argument checks run synchronously before anything is queued or sent.
Store errors (botocore ClientError) propagate unchanged.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from typing import Any

import boto3
from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError

from acl_dynamodb.config import BackendConfig
from acl_dynamodb.mutations import MutationBuilder
from acl_dynamodb.operations import TABLE_WAITER_CONFIG
from acl_dynamodb.reader import BatchedReader
from acl_dynamodb.registry import TableRegistry
from acl_dynamodb.retry import RetryPolicy, is_missing_table
from acl_dynamodb.router import TableRouter
from acl_dynamodb.transaction import Transaction, TransactionCoordinator

logger = Logger(service="acl-dynamodb")


def _is_key(value: Any) -> bool:
    return isinstance(value, (str, int)) and not isinstance(value, bool)


def _check_bucket(bucket: Any) -> None:
    if not isinstance(bucket, str):
        raise TypeError(f"bucket must be a str, got {type(bucket).__name__}")


def _check_key(key: Any) -> None:
    if not _is_key(key):
        raise TypeError(f"key must be a str or int, got {type(key).__name__}")


def _check_key_list(name: str, values: Any, *, allow_scalar: bool) -> None:
    if isinstance(values, (list, tuple)):
        bad = [v for v in values if not _is_key(v)]
        if bad:
            raise TypeError(f"{name} entries must be str or int, got {bad[0]!r}")
        return
    if allow_scalar and _is_key(values):
        return
    raise TypeError(f"{name} must be a str, int or list of those, got {type(values).__name__}")


def _check_transaction(transaction: Any) -> None:
    if not isinstance(transaction, Transaction):
        raise TypeError(f"transaction must come from begin(), got {type(transaction).__name__}")


class DynamoDBBackend:
    """
    ACL storage backend over DynamoDB.

    Buckets map to tables ({prefix}{bucket}) or, with use_single, to a
    partition of one shared {prefix}resources table. Tables are created
    lazily on the first add() to a bucket.
    """

    def __init__(
        self,
        dynamodb_resource: Any = None,
        *,
        config: BackendConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config or BackendConfig()
        self._dynamodb: Any = dynamodb_resource or boto3.resource(
            "dynamodb", region_name=os.environ["AWS_REGION"]
        )
        self._router = TableRouter(prefix=self._config.prefix, use_single=self._config.use_single)
        self._registry = TableRegistry()
        retry_policy = RetryPolicy(
            max_retries=self._config.max_read_retries,
            base_delay=self._config.retry_base_delay,
            sleep=sleep,
        )
        self._reader = BatchedReader(self._dynamodb, self._router, retry_policy=retry_policy)
        self._mutations = MutationBuilder(
            self._router, self._registry, self._config, retry_policy=retry_policy
        )
        self._coordinator = TransactionCoordinator(self._dynamodb)

    @property
    def config(self) -> BackendConfig:
        return self._config

    @property
    def router(self) -> TableRouter:
        return self._router

    @property
    def registry(self) -> TableRegistry:
        return self._registry

    def begin(self) -> Transaction:
        return self._coordinator.begin()

    def end(self, transaction: Transaction) -> None:
        _check_transaction(transaction)
        self._coordinator.end(transaction)

    def clean(self) -> None:
        """Delete every table this process created and forget it.

        Tables created by other processes are not known here and are left alone.
        """
        client = self._dynamodb.meta.client
        for table_name in self._registry.names():
            try:
                client.delete_table(TableName=table_name)
            except ClientError as exc:
                if not is_missing_table(exc):
                    raise
                logger.debug("Table already gone", table_name=table_name)
            else:
                logger.info("Deleted table", table_name=table_name)
                if self._config.wait_for_tables:
                    client.get_waiter("table_not_exists").wait(
                        TableName=table_name, WaiterConfig=TABLE_WAITER_CONFIG
                    )
        self._registry.clear()

    def get(self, bucket: str, key: str | int) -> list[str]:
        """Value names stored at bucket/key; [] when the row does not exist."""
        _check_bucket(bucket)
        _check_key(key)
        return self._reader.get(bucket, key)

    def union(self, bucket: str, keys: list[str | int]) -> list[str]:
        """Union of the value names stored at each key; missing rows contribute nothing."""
        _check_bucket(bucket)
        if not isinstance(keys, (list, tuple)):
            raise TypeError(f"keys must be a list, got {type(keys).__name__}")
        _check_key_list("keys", keys, allow_scalar=False)
        return self._reader.union(bucket, list(keys))

    def add(self, transaction: Transaction, bucket: str, key: str | int, values: Any) -> None:
        _check_transaction(transaction)
        _check_bucket(bucket)
        _check_key(key)
        _check_key_list("values", values, allow_scalar=True)
        self._mutations.add(transaction, bucket, key, values)

    def remove(self, transaction: Transaction, bucket: str, key: str | int, values: Any) -> None:
        _check_transaction(transaction)
        _check_bucket(bucket)
        _check_key(key)
        _check_key_list("values", values, allow_scalar=True)
        self._mutations.remove(transaction, bucket, key, values)

    def delete(self, transaction: Transaction, bucket: str, keys: Any) -> None:
        _check_transaction(transaction)
        _check_bucket(bucket)
        _check_key_list("keys", keys, allow_scalar=True)
        self._mutations.delete(transaction, bucket, keys)
