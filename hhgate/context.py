import time
from dataclasses import dataclass, field
from typing import Callable

from .config import Settings
from .hh_client import HHClient
from .store import DocumentStore, InMemoryDocumentStore, MongoDocumentStore
from .user_repository import UserRepository


@dataclass
class AppContext:
    """Collaborators shared by every request, built once at startup."""
    settings: Settings
    users: UserRepository
    hh: HHClient
    clock: Callable[[], float] = field(default=time.time)

    def now_ms(self) -> int:
        return int(self.clock() * 1000)


def build_store(settings: Settings) -> DocumentStore:
    if settings.storage_backend == "memory":
        return InMemoryDocumentStore()
    return MongoDocumentStore.connect(
        settings.mongodb_uri,
        settings.db_name,
        collection=settings.users_collection,
    )


def build_context(settings: Settings) -> AppContext:
    return AppContext(
        settings=settings,
        users=UserRepository(build_store(settings)),
        hh=HHClient(settings),
    )
