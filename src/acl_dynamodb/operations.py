"""
acl_dynamodb.operations — Storage operations queued inside a transaction.

Each operation is a plain value carrying its request parameters, so a built
transaction can be inspected before anything touches the network. Nothing
here is atomic with respect to any other operation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError

from acl_dynamodb.retry import RetryPolicy, chunked, is_missing_table

if TYPE_CHECKING:
    from acl_dynamodb.registry import TableRegistry

logger = Logger(service="acl-dynamodb")

BATCH_WRITE_LIMIT = 25
TABLE_WAITER_CONFIG = {"Delay": 2, "MaxAttempts": 60}


class Operation:
    """One step of a transaction. Subclasses issue a single logical request."""

    kind = "operation"

    def execute(self, dynamodb: Any) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class CreateTable(Operation):
    """Create a bucket table with provisioned throughput.

    Store errors are logged and swallowed: "table already exists" is the
    steady state once any process has written to the bucket. Other failures
    release the registry claim so a later write tries again; success records
    the table even if the claim was released in the meantime.
    """

    kind = "create_table"

    table_name: str
    key_schema: list[dict[str, str]]
    attribute_definitions: list[dict[str, str]]
    read_capacity_units: int
    write_capacity_units: int
    wait_until_active: bool = True
    registry: TableRegistry | None = field(default=None, compare=False, repr=False)

    def execute(self, dynamodb: Any) -> None:
        try:
            dynamodb.create_table(
                TableName=self.table_name,
                KeySchema=self.key_schema,
                AttributeDefinitions=self.attribute_definitions,
                ProvisionedThroughput={
                    "ReadCapacityUnits": self.read_capacity_units,
                    "WriteCapacityUnits": self.write_capacity_units,
                },
            )
            logger.info("Created table", table_name=self.table_name)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code != "ResourceInUseException":
                logger.warning(
                    "create_table failed; continuing",
                    table_name=self.table_name,
                    error_code=code,
                )
                if self.registry is not None:
                    self.registry.forget(self.table_name)
                return
            logger.debug("Table already exists", table_name=self.table_name)

        if self.registry is not None:
            self.registry.claim(self.table_name)
        if self.wait_until_active:
            waiter = dynamodb.meta.client.get_waiter("table_exists")
            waiter.wait(TableName=self.table_name, WaiterConfig=TABLE_WAITER_CONFIG)


@dataclass(frozen=True)
class UpdateItem(Operation):
    """SET or REMOVE value attributes on a single row (upsert).

    When create_table is set and the table turns out not to exist (its claim
    belonged to a transaction that failed or never ran), the table is created
    and the update is sent once more.
    """

    kind = "update_item"

    table_name: str
    key: dict[str, Any]
    update_expression: str
    expression_attribute_names: dict[str, str]
    expression_attribute_values: dict[str, Any] | None = None
    ignore_missing_table: bool = False
    create_table: CreateTable | None = field(default=None, compare=False, repr=False)

    def execute(self, dynamodb: Any) -> None:
        kwargs: dict[str, Any] = {
            "Key": self.key,
            "UpdateExpression": self.update_expression,
            "ExpressionAttributeNames": self.expression_attribute_names,
        }
        if self.expression_attribute_values is not None:
            kwargs["ExpressionAttributeValues"] = self.expression_attribute_values
        logger.debug("update_item", table_name=self.table_name, key=self.key)
        table = dynamodb.Table(self.table_name)
        try:
            table.update_item(**kwargs)
        except ClientError as exc:
            if not is_missing_table(exc):
                raise
            if self.ignore_missing_table:
                logger.debug("Table does not exist; nothing to update", table_name=self.table_name)
                return
            if self.create_table is None:
                raise
            logger.warning("Table missing on update; creating it", table_name=self.table_name)
            self.create_table.execute(dynamodb)
            table.update_item(**kwargs)


@dataclass(frozen=True)
class BatchDelete(Operation):
    """Delete whole rows, at most 25 per BatchWriteItem, reissuing UnprocessedItems."""

    kind = "batch_delete"

    table_name: str
    keys: list[dict[str, Any]]
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy, compare=False, repr=False)
    ignore_missing_table: bool = True

    def execute(self, dynamodb: Any) -> None:
        requests = [{"DeleteRequest": {"Key": key}} for key in self.keys]
        try:
            for chunk in chunked(requests, BATCH_WRITE_LIMIT):
                self._write_chunk(dynamodb, list(chunk))
        except ClientError as exc:
            if self.ignore_missing_table and is_missing_table(exc):
                logger.debug("Table does not exist; nothing to delete", table_name=self.table_name)
                return
            raise

    def _write_chunk(self, dynamodb: Any, requests: list[dict[str, Any]]) -> None:
        request_items: dict[str, Any] = {self.table_name: requests}
        attempt = 0
        while True:
            logger.debug(
                "batch_write_item",
                table_name=self.table_name,
                request_count=len(request_items.get(self.table_name, [])),
                attempt=attempt,
            )
            response = dynamodb.batch_write_item(RequestItems=request_items)
            unprocessed = response.get("UnprocessedItems") or {}
            if not unprocessed:
                return
            attempt += 1
            self.retry_policy.wait(
                attempt,
                operation="batch_write",
                table_name=self.table_name,
                unprocessed_count=len(unprocessed.get(self.table_name, [])),
            )
            request_items = unprocessed
