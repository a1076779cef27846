"""
acl_dynamodb.mutations — Translates add/remove/delete into queued operations.

Values are stored as boolean attributes on the row: adding "view" to key
"doc1" sets doc1.view = true. Attribute names are encoded with the key
codec and referenced through ExpressionAttributeNames placeholders.

Builder calls only append to the caller's transaction; nothing is sent to
DynamoDB until the transaction runs.
"""

from __future__ import annotations

from typing import Any

from acl_dynamodb.codec import encode_text
from acl_dynamodb.config import BackendConfig
from acl_dynamodb.exceptions import ReservedKeyError
from acl_dynamodb.operations import BatchDelete, CreateTable, UpdateItem
from acl_dynamodb.registry import TableRegistry
from acl_dynamodb.retry import RetryPolicy
from acl_dynamodb.router import KEY_ATTRIBUTE, RESERVED_ATTRIBUTES, TableRouter
from acl_dynamodb.transaction import Transaction

_TRUE_PLACEHOLDER = ":trueVal"


def as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _attribute_names(values: Any, *, reject_reserved: bool = True) -> dict[str, str]:
    """Map #v0, #v1, ... to encoded value names, dropping duplicates.

    Reserved names raise ReservedKeyError, or are skipped when reject_reserved
    is False since they can never be members of a value set.
    """
    names: list[str] = []
    for value in as_list(values):
        if value in RESERVED_ATTRIBUTES:
            if reject_reserved:
                raise ReservedKeyError(value)
            continue
        name = str(encode_text(value))
        if name not in names:
            names.append(name)
    return {f"#v{idx}": name for idx, name in enumerate(names)}


class MutationBuilder:
    def __init__(
        self,
        router: TableRouter,
        registry: TableRegistry,
        config: BackendConfig,
        *,
        retry_policy: RetryPolicy,
    ) -> None:
        self._router = router
        self._registry = registry
        self._config = config
        self._retry = retry_policy

    def add(self, transaction: Transaction, bucket: str, key: str | int, values: Any) -> None:
        if key == KEY_ATTRIBUTE:
            raise ReservedKeyError(key)
        names = _attribute_names(values)
        table_name = self._router.table_name(bucket)
        transaction.ensure_open()

        create_table = self._create_table(table_name)
        if self._registry.claim(table_name):
            transaction.append(create_table)
        if not names:
            return

        assignments = ", ".join(f"{placeholder} = {_TRUE_PLACEHOLDER}" for placeholder in names)
        transaction.append(
            UpdateItem(
                table_name=table_name,
                key=self._router.item_key(bucket, encode_text(key)),
                update_expression=f"SET {assignments}",
                expression_attribute_names=names,
                expression_attribute_values={_TRUE_PLACEHOLDER: True},
                create_table=create_table,
            )
        )

    def remove(self, transaction: Transaction, bucket: str, key: str | int, values: Any) -> None:
        """Queue removal of value attributes. The row itself survives, even when emptied."""
        names = _attribute_names(values, reject_reserved=False)
        table_name = self._router.table_name(bucket)
        transaction.ensure_open()
        if not names:
            return
        transaction.append(
            UpdateItem(
                table_name=table_name,
                key=self._router.item_key(bucket, encode_text(key)),
                update_expression="REMOVE " + ", ".join(names),
                expression_attribute_names=names,
                ignore_missing_table=True,
            )
        )

    def delete(self, transaction: Transaction, bucket: str, keys: Any) -> None:
        table_name = self._router.table_name(bucket)
        transaction.ensure_open()
        # BatchWriteItem rejects duplicate keys within one request.
        encoded = list(dict.fromkeys(str(encode_text(k)) for k in as_list(keys)))
        if not encoded:
            return
        transaction.append(
            BatchDelete(
                table_name=table_name,
                keys=[self._router.item_key(bucket, k) for k in encoded],
                retry_policy=self._retry,
            )
        )

    def _create_table(self, table_name: str) -> CreateTable:
        return CreateTable(
            table_name=table_name,
            key_schema=self._router.key_schema(),
            attribute_definitions=self._router.attribute_definitions(),
            read_capacity_units=self._config.read_capacity_units,
            write_capacity_units=self._config.write_capacity_units,
            wait_until_active=self._config.wait_for_tables,
            registry=self._registry,
        )
