"""Key-value stores and the transactions used to read and write their records."""

from __future__ import annotations

import enum
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..core import FSError
from .record import FileRecord


class TransactionMode(enum.Enum):
    """Whether a transaction may write."""

    READ_ONLY = 0
    READ_WRITE = 1


@dataclass
class OpResult:
    """The outcome of one operation in a transaction."""

    op: int
    record: Optional[FileRecord] = None
    err: Optional[BaseException] = None


Handler = Callable[["Transaction", OpResult], None]


class Store(ABC):
    """Holds file records by path."""

    @abstractmethod
    def get(self, path: str) -> FileRecord:
        """Return the record at 'path'. Raises NotExistError if there is none."""

    @abstractmethod
    def set(self, path: str, src: Optional[FileRecord]) -> None:
        """Store 'src' at 'path', or delete 'path' when 'src' is None."""


class TransactionStore(Store):
    """A store that can group operations into transactions."""

    @abstractmethod
    def transaction(self, mode: TransactionMode) -> "Transaction":
        """Start a new transaction."""


class Transaction(ABC):
    """Queues operations and reports their results on commit.

    Handlers are called as handler(txn, result) while the operation is
    processed; an exception raised by a handler is recorded as the
    operation's error unless it already has one.
    """

    @abstractmethod
    def get(self, path: str) -> int:
        """Queue a read of 'path'. Returns the operation id."""

    @abstractmethod
    def get_handler(self, path: str, handler: Handler) -> int:
        """Queue a read of 'path' whose result goes through 'handler'."""

    @abstractmethod
    def set(self, path: str, src: Optional[FileRecord], contents: Any) -> int:
        """Queue a write of 'src' to 'path'. Returns the operation id."""

    @abstractmethod
    def set_handler(self, path: str, src: Optional[FileRecord], contents: Any, handler: Handler) -> int:
        """Queue a write whose result goes through 'handler'."""

    @abstractmethod
    def commit(self) -> list[OpResult]:
        """Finish the transaction and return results ordered by operation id."""

    @abstractmethod
    def abort(self) -> None:
        """Stop the transaction."""


class _TransactionAbortedError(FSError):
    message = "transaction aborted"


def _run_handler(txn: Transaction, handler: Optional[Handler], result: OpResult) -> None:
    if handler is None:
        return
    try:
        handler(txn, result)
    except Exception as err:  # noqa: BLE001 - handler errors belong to the result
        if result.err is None:
            result.err = err


class SerialTransaction(Transaction):
    """Runs each operation on a plain store at once, without isolation."""

    def __init__(self, store: Store) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._next_op = 0
        self._results: dict[int, OpResult] = {}
        self._aborted = False

    def _new_op(self) -> int:
        with self._lock:
            op = self._next_op
            self._next_op += 1
            return op

    def _put(self, result: OpResult) -> None:
        with self._lock:
            self._results[result.op] = result

    def get(self, path: str) -> int:
        return self.get_handler(path, None)

    def get_handler(self, path: str, handler: Optional[Handler]) -> int:
        op = self._new_op()
        if self._aborted:
            self._put(OpResult(op, err=_TransactionAbortedError()))
            return op
        try:
            result = OpResult(op, record=self._store.get(path))
        except Exception as err:  # noqa: BLE001 - store errors belong to the result
            result = OpResult(op, err=err)
        _run_handler(self, handler, result)
        self._put(result)
        return op

    def set(self, path: str, src: Optional[FileRecord], contents: Any) -> int:
        return self.set_handler(path, src, contents, None)

    def set_handler(self, path: str, src: Optional[FileRecord], contents: Any, handler: Optional[Handler]) -> int:
        op = self._new_op()
        if self._aborted:
            self._put(OpResult(op, err=_TransactionAbortedError()))
            return op
        try:
            self._store.set(path, src)
            result = OpResult(op)
        except Exception as err:  # noqa: BLE001 - store errors belong to the result
            result = OpResult(op, err=err)
        _run_handler(self, handler, result)
        self._put(result)
        return op

    def commit(self) -> list[OpResult]:
        if self._aborted:
            raise _TransactionAbortedError()
        self._aborted = True
        with self._lock:
            return [self._results[op] for op in range(self._next_op)]

    def abort(self) -> None:
        self._aborted = True


def transaction_or_serial(store: Store, mode: TransactionMode = TransactionMode.READ_ONLY) -> Transaction:
    """Start a transaction on 'store', or a serial one if it has no transactions."""
    start = getattr(store, "transaction", None)
    if callable(start):
        return start(mode)
    return SerialTransaction(store)