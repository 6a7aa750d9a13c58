import copy
import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

from bson import ObjectId
from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from .errors import StoreError

logger = logging.getLogger("hhgate.store")

Document = Dict[str, Any]


class DocumentStore(Protocol):
    """A single collection of JSON-like documents addressed by id."""

    async def get(self, doc_id: str) -> Optional[Document]: ...

    async def add(self, data: Document) -> str: ...

    async def merge(self, doc_id: str, data: Document, on_insert: Optional[Document] = None) -> None: ...

    async def update(self, doc_id: str, data: Document) -> None: ...

    async def list(self) -> List[Tuple[str, Document]]: ...

    async def close(self) -> None: ...


def _new_id() -> str:
    return str(ObjectId())


class InMemoryDocumentStore:
    """In-memory document store for local development and tests."""

    def __init__(self):
        self._docs: Dict[str, Document] = {}

    async def get(self, doc_id: str) -> Optional[Document]:
        doc = self._docs.get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def add(self, data: Document) -> str:
        doc_id = _new_id()
        self._docs[doc_id] = copy.deepcopy(data)
        return doc_id

    async def merge(self, doc_id: str, data: Document, on_insert: Optional[Document] = None) -> None:
        if doc_id not in self._docs:
            self._docs[doc_id] = copy.deepcopy(on_insert or {})
        self._docs[doc_id].update(copy.deepcopy(data))

    async def update(self, doc_id: str, data: Document) -> None:
        if doc_id not in self._docs:
            raise StoreError(f"Document {doc_id} not found")
        self._docs[doc_id].update(copy.deepcopy(data))

    async def list(self) -> List[Tuple[str, Document]]:
        return [(doc_id, copy.deepcopy(doc)) for doc_id, doc in self._docs.items()]

    async def close(self) -> None:
        pass


class MongoDocumentStore:
    """Document store backed by one MongoDB collection.

    Documents use string ``_id`` values; plain inserts get a fresh ObjectId
    rendered as hex. Every write touches a single document.
    """

    def __init__(self, collection: AsyncCollection, client: Optional[AsyncMongoClient] = None) -> None:
        self.collection = collection
        self.client = client

    @classmethod
    def connect(cls, uri: str, db_name: str, collection: str = "users") -> "MongoDocumentStore":
        client = AsyncMongoClient(uri, tz_aware=True)
        logger.info("Using MongoDB database %s, collection %s", db_name, collection)
        return cls(client[db_name][collection], client)

    async def get(self, doc_id: str) -> Optional[Document]:
        try:
            doc = await self.collection.find_one({"_id": doc_id})
        except PyMongoError as e:
            raise StoreError(f"Failed to read document {doc_id}: {e}") from e
        if doc is None:
            return None
        doc.pop("_id", None)
        return doc

    async def add(self, data: Document) -> str:
        doc_id = _new_id()
        try:
            await self.collection.insert_one({**data, "_id": doc_id})
        except PyMongoError as e:
            raise StoreError(f"Failed to add document: {e}") from e
        return doc_id

    async def merge(self, doc_id: str, data: Document, on_insert: Optional[Document] = None) -> None:
        update: Document = {"$set": data}
        if on_insert:
            update["$setOnInsert"] = on_insert
        try:
            await self.collection.update_one({"_id": doc_id}, update, upsert=True)
        except PyMongoError as e:
            raise StoreError(f"Failed to merge document {doc_id}: {e}") from e

    async def update(self, doc_id: str, data: Document) -> None:
        try:
            result = await self.collection.update_one({"_id": doc_id}, {"$set": data})
        except PyMongoError as e:
            raise StoreError(f"Failed to update document {doc_id}: {e}") from e
        if result.matched_count == 0:
            raise StoreError(f"Document {doc_id} not found")

    async def list(self) -> List[Tuple[str, Document]]:
        documents = []
        try:
            async for doc in self.collection.find():
                doc_id = doc.pop("_id")
                documents.append((str(doc_id), doc))
        except PyMongoError as e:
            raise StoreError(f"Failed to list documents: {e}") from e
        return documents

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
