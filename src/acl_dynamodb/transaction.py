"""
acl_dynamodb.transaction — Ordered, non-atomic groups of storage operations.

A transaction only fixes the order in which operations run. end() executes
them one at a time and stops at the first failure; anything that already
ran stays applied. There is no rollback and a failed transaction cannot be
resumed.

Lifecycle: BUILT → EXECUTING → COMPLETED | FAILED
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from aws_lambda_powertools import Logger

from acl_dynamodb.exceptions import TransactionStateError
from acl_dynamodb.operations import CreateTable, Operation

logger = Logger(service="acl-dynamodb")


class TransactionState(StrEnum):
    BUILT = "built"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Transaction:
    operations: list[Operation] = field(default_factory=list)
    state: TransactionState = TransactionState.BUILT

    def ensure_open(self) -> None:
        if self.state is not TransactionState.BUILT:
            raise TransactionStateError(
                f"Transaction is {self.state.value}; operations can only be added while built"
            )

    def append(self, operation: Operation) -> None:
        self.ensure_open()
        self.operations.append(operation)

    def __len__(self) -> int:
        return len(self.operations)


class TransactionCoordinator:
    def __init__(self, dynamodb: Any) -> None:
        self._dynamodb = dynamodb

    def begin(self) -> Transaction:
        return Transaction()

    def end(self, transaction: Transaction) -> None:
        """Run every operation in order; re-raise the first failure unchanged."""
        if transaction.state is not TransactionState.BUILT:
            raise TransactionStateError(
                f"Transaction is {transaction.state.value}; only a built transaction can run"
            )
        transaction.state = TransactionState.EXECUTING
        total = len(transaction.operations)
        for index, operation in enumerate(transaction.operations):
            try:
                operation.execute(self._dynamodb)
            except Exception:
                transaction.state = TransactionState.FAILED
                logger.exception(
                    "Transaction operation failed; remaining operations skipped",
                    index=index,
                    kind=operation.kind,
                    skipped=total - index - 1,
                )
                _release_unrun_claims(transaction.operations[index:])
                raise
        transaction.state = TransactionState.COMPLETED
        logger.debug("Transaction completed", operation_count=total)


def _release_unrun_claims(operations: list[Operation]) -> None:
    """Forget table claims whose CreateTable never completed, so a later add queues it again."""
    for operation in operations:
        if isinstance(operation, CreateTable) and operation.registry is not None:
            operation.registry.forget(operation.table_name)
