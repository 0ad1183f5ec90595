"""
Document Store Interface

Thin async interface over a document database: collections of JSON-like
documents addressed by string ids, simple field filters, one sort key, and
live listeners that receive full snapshots after every write.

Implementations:
- InMemoryDocumentStore (core/memory_store.py): process-local, used for
  development and tests
- SqlDocumentStore (core/sql_store.py): SQLAlchemy async, one JSON column per
  document

Listener delivery happens in-process after each write made through the same
store instance. Listener failures are logged and never fail the write.
"""
import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from otrocoro_admin.core.exceptions import DocumentStoreError
from otrocoro_admin.core.subscriptions import Subscription

logger = logging.getLogger(__name__)

FILTER_OPERATORS = (
    "==", "!=", "<", "<=", ">", ">=",
    "in", "not-in", "array-contains", "array-contains-any",
)


@dataclass
class Document:
    """A stored document: its id and a JSON-compatible payload."""
    id: str
    data: Dict[str, Any]


def get_field(data: Dict[str, Any], path: str) -> Any:
    """Read a possibly dotted field path ("restrictions.min_quantity")."""
    value: Any = data
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


@dataclass(frozen=True)
class FieldFilter:
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")

    def matches(self, data: Dict[str, Any]) -> bool:
        actual = get_field(data, self.field)
        op = self.op
        if op == "==":
            return actual == self.value
        if op == "!=":
            return actual != self.value
        if op == "in":
            return actual in self.value
        if op == "not-in":
            return actual not in self.value
        if op == "array-contains":
            return isinstance(actual, list) and self.value in actual
        if op == "array-contains-any":
            return isinstance(actual, list) and any(v in actual for v in self.value)
        # Range operators never match missing fields
        if actual is None:
            return False
        try:
            if op == "<":
                return actual < self.value
            if op == "<=":
                return actual <= self.value
            if op == ">":
                return actual > self.value
            return actual >= self.value
        except TypeError:
            return False


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class Query:
    """Immutable query description; builder methods return new queries."""
    filters: Tuple[FieldFilter, ...] = field(default_factory=tuple)
    order_by: Optional[OrderBy] = None
    limit: Optional[int] = None

    def where(self, field_path: str, op: str, value: Any) -> "Query":
        return replace(self, filters=self.filters + (FieldFilter(field_path, op, value),))

    def order(self, field_path: str, descending: bool = False) -> "Query":
        return replace(self, order_by=OrderBy(field_path, descending))

    def limit_to(self, count: Optional[int]) -> "Query":
        return replace(self, limit=count)

    def matches(self, data: Dict[str, Any]) -> bool:
        return all(f.matches(data) for f in self.filters)

    def apply(self, documents: Iterable[Document], filters: Optional[Iterable[FieldFilter]] = None) -> List[Document]:
        """
        Evaluate the query in memory.

        Args:
            documents: Candidate documents
            filters: Subset of filters to evaluate (default: all of them)
        """
        active = tuple(self.filters if filters is None else filters)
        result = [doc for doc in documents if all(f.matches(doc.data) for f in active)]
        if self.order_by is not None:
            result = sort_documents(result, self.order_by)
        if self.limit is not None:
            result = result[: self.limit]
        return result


def sort_documents(documents: List[Document], order_by: OrderBy) -> List[Document]:
    """Stable sort on one field; documents missing the field go last."""
    present = [d for d in documents if get_field(d.data, order_by.field) is not None]
    missing = [d for d in documents if get_field(d.data, order_by.field) is None]
    present.sort(key=lambda d: get_field(d.data, order_by.field), reverse=order_by.descending)
    return present + missing


@dataclass(eq=False)
class _Listener:
    collection: str
    callback: Callable[[Any], Any]
    document_id: Optional[str] = None
    query: Optional[Query] = None


class DocumentStore(ABC):
    """Base class for document store implementations."""

    def __init__(self):
        self._listeners: List[_Listener] = []

    # ----- CRUD -----

    @abstractmethod
    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        """Fetch one document, or None when it does not exist."""

    @abstractmethod
    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Insert a document under a generated id and return the id."""

    @abstractmethod
    async def set(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        """Create or fully replace a document."""

    @abstractmethod
    async def update(self, collection: str, document_id: str, changes: Dict[str, Any]) -> None:
        """
        Merge top-level fields into an existing document.

        Raises:
            DocumentNotFoundError: the document does not exist
        """

    @abstractmethod
    async def delete(self, collection: str, document_id: str) -> bool:
        """Delete a document. Returns False when it did not exist."""

    @abstractmethod
    async def query(self, collection: str, query: Optional[Query] = None) -> List[Document]:
        """Run a query against one collection."""

    async def close(self) -> None:
        """Release resources held by the store."""
        self._listeners.clear()

    # ----- Live listeners -----

    async def watch_document(
        self,
        collection: str,
        document_id: str,
        callback: Callable[[Optional[Document]], Any],
    ) -> Subscription:
        """Deliver the current document now and again after every write."""
        listener = _Listener(collection=collection, callback=callback, document_id=document_id)
        await self._deliver(listener)
        return self._register(listener)

    async def watch_query(
        self,
        collection: str,
        query: Optional[Query],
        callback: Callable[[List[Document]], Any],
    ) -> Subscription:
        """Deliver the full query result now and again after every write."""
        listener = _Listener(collection=collection, callback=callback, query=query or Query())
        await self._deliver(listener)
        return self._register(listener)

    def _register(self, listener: _Listener) -> Subscription:
        self._listeners.append(listener)

        def detach():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(on_cancel=detach)

    async def _notify(self, collection: str) -> None:
        """Re-run every listener on the collection after a write."""
        for listener in [l for l in self._listeners if l.collection == collection]:
            # Cancelled while an earlier listener was being served
            if listener not in self._listeners:
                continue
            try:
                await self._deliver(listener)
            except DocumentStoreError as e:
                logger.error(f"Listener refresh failed on {collection}: {e.message}")
            except Exception:
                logger.exception(f"Listener callback failed on {collection}")

    async def _deliver(self, listener: _Listener) -> None:
        if listener.document_id is not None:
            snapshot: Any = await self.get(listener.collection, listener.document_id)
        else:
            snapshot = await self.query(listener.collection, listener.query)
        result = listener.callback(snapshot)
        if inspect.isawaitable(result):
            await result
