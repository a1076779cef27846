"""tests/test_transaction.py — Ordered, non-atomic execution and lifecycle states."""

from __future__ import annotations

import threading
from typing import Any

import pytest
from acl_dynamodb import TransactionStateError
from acl_dynamodb.operations import CreateTable, Operation
from acl_dynamodb.registry import TableRegistry
from acl_dynamodb.transaction import Transaction, TransactionCoordinator, TransactionState


class RecordingOperation(Operation):
    kind = "recording"

    def __init__(self, name: str, log: list[str]) -> None:
        self.name = name
        self.log = log

    def execute(self, dynamodb: Any) -> None:
        self.log.append(self.name)


class FailingOperation(Operation):
    kind = "failing"

    def __init__(self, error: Exception) -> None:
        self.error = error

    def execute(self, dynamodb: Any) -> None:
        raise self.error


def _create_table(table_name: str, registry: TableRegistry) -> CreateTable:
    return CreateTable(
        table_name=table_name,
        key_schema=[{"AttributeName": "key", "KeyType": "HASH"}],
        attribute_definitions=[{"AttributeName": "key", "AttributeType": "S"}],
        read_capacity_units=5,
        write_capacity_units=5,
        registry=registry,
    )


class TestTransactionCoordinator:
    def test_begin_returns_empty_built_transaction(self) -> None:
        tx = TransactionCoordinator(object()).begin()
        assert tx.operations == []
        assert tx.state is TransactionState.BUILT

    def test_runs_operations_in_order(self) -> None:
        log: list[str] = []
        coordinator = TransactionCoordinator(object())
        tx = coordinator.begin()
        for name in ("a", "b", "c"):
            tx.append(RecordingOperation(name, log))
        coordinator.end(tx)
        assert log == ["a", "b", "c"]
        assert tx.state is TransactionState.COMPLETED

    def test_stops_at_first_failure_and_reraises_it(self) -> None:
        log: list[str] = []
        error = RuntimeError("boom")
        coordinator = TransactionCoordinator(object())
        tx = coordinator.begin()
        tx.append(RecordingOperation("a", log))
        tx.append(RecordingOperation("b", log))
        tx.append(FailingOperation(error))
        tx.append(RecordingOperation("c", log))

        with pytest.raises(RuntimeError) as exc_info:
            coordinator.end(tx)

        assert exc_info.value is error
        assert log == ["a", "b"]
        assert tx.state is TransactionState.FAILED

    def test_empty_transaction_completes(self) -> None:
        coordinator = TransactionCoordinator(object())
        tx = coordinator.begin()
        coordinator.end(tx)
        assert tx.state is TransactionState.COMPLETED

    @pytest.mark.parametrize(
        "state", [TransactionState.COMPLETED, TransactionState.FAILED, TransactionState.EXECUTING]
    )
    def test_only_built_transactions_run(self, state: TransactionState) -> None:
        tx = Transaction(state=state)
        with pytest.raises(TransactionStateError):
            TransactionCoordinator(object()).end(tx)

    def test_failed_transaction_cannot_be_resumed(self) -> None:
        log: list[str] = []
        coordinator = TransactionCoordinator(object())
        tx = coordinator.begin()
        tx.append(FailingOperation(ValueError("nope")))
        tx.append(RecordingOperation("after", log))
        with pytest.raises(ValueError):
            coordinator.end(tx)
        with pytest.raises(TransactionStateError):
            coordinator.end(tx)
        with pytest.raises(TransactionStateError):
            tx.append(RecordingOperation("late", log))
        assert log == []

    def test_failure_releases_claims_of_creates_that_never_ran(self) -> None:
        registry = TableRegistry()
        registry.claim("acl_users")
        registry.claim("acl_roles")
        coordinator = TransactionCoordinator(object())
        tx = coordinator.begin()
        tx.append(FailingOperation(RuntimeError("boom")))
        tx.append(_create_table("acl_users", registry))
        with pytest.raises(RuntimeError):
            coordinator.end(tx)
        assert registry.names() == ["acl_roles"]

    def test_operation_base_is_abstract(self) -> None:
        with pytest.raises(NotImplementedError):
            Operation().execute(object())


class TestTableRegistry:
    def test_claim_is_insert_if_absent(self) -> None:
        registry = TableRegistry()
        assert registry.claim("acl_users") is True
        assert registry.claim("acl_users") is False
        assert "acl_users" in registry

    def test_forget_and_names(self) -> None:
        registry = TableRegistry()
        registry.claim("b")
        registry.claim("a")
        assert registry.names() == ["a", "b"]
        registry.forget("a")
        registry.forget("missing")
        assert registry.names() == ["b"]

    def test_clear(self) -> None:
        registry = TableRegistry()
        registry.claim("a")
        registry.claim("b")
        registry.clear()
        assert registry.names() == []
        assert registry.claim("a") is True

    def test_concurrent_claims_have_one_winner(self) -> None:
        registry = TableRegistry()
        results: list[bool] = []
        lock = threading.Lock()
        barrier = threading.Barrier(16)

        def worker() -> None:
            barrier.wait()
            won = registry.claim("acl_users")
            with lock:
                results.append(won)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert len(results) == 16
