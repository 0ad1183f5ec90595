"""
In-memory document store.

Process-local implementation of DocumentStore. Documents are deep-copied on
the way in and out so callers can never mutate stored state by accident.
"""
import copy
import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional
from uuid import uuid4

from otrocoro_admin.core.document_store import Document, DocumentStore, Query
from otrocoro_admin.core.exceptions import DocumentNotFoundError

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed document store keeping insertion order per collection."""

    def __init__(self):
        super().__init__()
        self._collections: Dict[str, "OrderedDict[str, Dict[str, Any]]"] = {}

    def _collection(self, name: str) -> "OrderedDict[str, Dict[str, Any]]":
        return self._collections.setdefault(name, OrderedDict())

    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        data = self._collection(collection).get(document_id)
        if data is None:
            return None
        return Document(id=document_id, data=copy.deepcopy(data))

    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        document_id = uuid4().hex
        self._collection(collection)[document_id] = copy.deepcopy(data)
        logger.debug(f"Added {collection}/{document_id}")
        await self._notify(collection)
        return document_id

    async def set(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        self._collection(collection)[document_id] = copy.deepcopy(data)
        await self._notify(collection)

    async def update(self, collection: str, document_id: str, changes: Dict[str, Any]) -> None:
        documents = self._collection(collection)
        if document_id not in documents:
            raise DocumentNotFoundError(
                f"No document {collection}/{document_id} to update",
                collection=collection,
                document_id=document_id,
            )
        documents[document_id].update(copy.deepcopy(changes))
        await self._notify(collection)

    async def delete(self, collection: str, document_id: str) -> bool:
        documents = self._collection(collection)
        if document_id not in documents:
            return False
        del documents[document_id]
        await self._notify(collection)
        return True

    async def query(self, collection: str, query: Optional[Query] = None) -> List[Document]:
        query = query or Query()
        documents = [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._collection(collection).items()
        ]
        return query.apply(documents)
