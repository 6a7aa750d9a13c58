import logging
from datetime import datetime, timezone
from typing import List

from .errors import StoreError, internal, not_found
from .store import DocumentStore
from .user import CreateUserRequest, HHUser, User

logger = logging.getLogger("hhgate.user_repository")


class UserRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def find_by_id(self, user_id: str) -> User:
        """Get a user by their ID.

        Raises:
            AppError: NOT_FOUND if no such document exists
        """
        try:
            data = await self.store.get(user_id)
        except StoreError as e:
            logger.error("Error reading user %s: %s", user_id, e)
            raise internal("Failed to read user") from e
        if data is None:
            raise not_found(f"User with id {user_id} not found")
        return User.from_document(user_id, data)

    async def create(self, user_data: CreateUserRequest) -> User:
        """Create a plain (non-OAuth) user with a store-generated id."""
        now = datetime.now(timezone.utc)
        document = {**user_data.model_dump(by_alias=True), "createdAt": now, "updatedAt": now}
        try:
            user_id = await self.store.add(document)
        except StoreError as e:
            logger.error("Error creating user: %s", e)
            raise internal("Failed to create user") from e
        logger.info("Created user %s", user_id)
        return await self.find_by_id(user_id)

    async def find_all(self) -> List[User]:
        try:
            documents = await self.store.list()
        except StoreError as e:
            logger.error("Error listing users: %s", e)
            raise internal("Failed to list users") from e
        return [User.from_document(doc_id, data) for doc_id, data in documents]

    async def create_or_update_hh_user(self, hh_user: HHUser) -> User:
        """
        Merge an hh.ru user into the store, keyed by the hh.ru user id.

        Calling this twice for the same hh.ru id updates one document; fields
        not present in ``hh_user`` are left untouched.
        """
        user_id = hh_user.hh_user_id
        now = datetime.now(timezone.utc)
        document = {**hh_user.to_document(), "updatedAt": now}
        try:
            await self.store.merge(user_id, document, on_insert={"createdAt": now})
        except StoreError as e:
            logger.error("Error saving hh.ru user %s: %s", user_id, e)
            raise internal("Failed to save user") from e
        logger.info("Saved hh.ru user %s", user_id)
        return await self.find_by_id(user_id)

    async def update_tokens(
        self,
        user_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: int,
    ) -> None:
        try:
            await self.store.update(user_id, {
                "accessToken": access_token,
                "refreshToken": refresh_token,
                "tokenExpiresAt": expires_at,
                "updatedAt": datetime.now(timezone.utc),
            })
        except StoreError as e:
            logger.error("Error updating tokens for user %s: %s", user_id, e)
            raise internal("Failed to update user tokens") from e
        logger.info("Updated hh.ru tokens for user: %s", user_id)
