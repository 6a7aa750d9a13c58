import os
import uuid

import pytest

from hhgate.store import MongoDocumentStore
from hhgate.user import HHUser
from hhgate.user_repository import UserRepository


@pytest.mark.integration
@pytest.mark.asyncio
async def test_hh_user_upsert_against_mongodb():
    """Runs against a live MongoDB when MONGODB_URI is set."""
    uri = os.getenv("MONGODB_URI")
    if not uri:
        pytest.skip("MONGODB_URI not configured; skipping MongoDB integration test")

    store = MongoDocumentStore.connect(uri, "hhgate_test", f"users_{uuid.uuid4().hex[:8]}")
    repository = UserRepository(store)
    try:
        for access_token in ("AT1", "AT2"):
            await repository.create_or_update_hh_user(HHUser(
                hh_user_id="hh42",
                email="a@b.com",
                access_token=access_token,
                refresh_token="RT1",
                token_expires_at=1_000,
            ))

        users = await repository.find_all()
        assert [u.id for u in users] == ["hh42"]
        assert users[0].access_token == "AT2"
        assert users[0].created_at is not None
    finally:
        await store.collection.drop()
        await store.close()
