from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class User(CamelModel):
    id: str # Document ID (store-generated or hh.ru user id)
    hh_user_id: str | None = None # hh.ru user id, OAuth users only
    user_name: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    access_token: str | None = None # Access token for hh.ru
    refresh_token: str | None = None # Refresh token for hh.ru
    token_expires_at: int | None = None # Access token expiry, epoch milliseconds
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "User":
        return cls.model_validate({**data, "id": doc_id})

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def token_valid_at(self, now_ms: int) -> bool:
        return self.token_expires_at is not None and now_ms < self.token_expires_at


class HHUser(CamelModel):
    """Profile and token fields written by the OAuth callback."""
    hh_user_id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    access_token: str
    refresh_token: str | None = None
    token_expires_at: int

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: int
    token_type: str | None = None


class HHUserInfo(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    middle_name: str | None = None


class CreateUserRequest(CamelModel):
    user_name: str = Field(..., min_length=3, max_length=50)


class RefreshTokenRequest(CamelModel):
    user_id: str = Field(..., min_length=1)
