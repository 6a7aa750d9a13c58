import logging
from typing import Dict, Optional

from .context import AppContext
from .errors import bad_request
from .user import HHUser, User

logger = logging.getLogger("hhgate.auth_service")


def generate_authorization_url(ctx: AppContext) -> Dict[str, str]:
    """Return the hh.ru authorization URL with a fresh random ``state``.

    The state is not persisted, so the callback cannot check it.
    """
    auth_url, _state = ctx.hh.authorization_url()
    return {"authUrl": auth_url}


async def handle_callback(ctx: AppContext, code: Optional[str], error: Optional[str] = None) -> User:
    """Complete the authorization code grant and upsert the hh.ru user.

    Input is checked before any network call. A store failure after a
    successful exchange is not retried; the code is already consumed.
    """
    if error:
        logger.info("Authorization denied by user: %s", error)
        raise bad_request("Access denied by user")
    if not code:
        raise bad_request("Authorization code not provided")

    token = await ctx.hh.exchange_code_for_token(code)
    info = await ctx.hh.get_user_info(token.access_token)

    user = await ctx.users.create_or_update_hh_user(HHUser(
        hh_user_id=info.id,
        email=info.email,
        first_name=info.first_name,
        last_name=info.last_name,
        access_token=token.access_token,
        refresh_token=token.refresh_token,
        token_expires_at=ctx.now_ms() + token.expires_in * 1000,
    ))
    logger.info("hh.ru user authorized: %s", user.id)
    return user


async def refresh_token(ctx: AppContext, user_id: str) -> Dict[str, str]:
    """Return a usable access token for ``user_id``, refreshing it only once expired."""
    user = await ctx.users.find_by_id(user_id)

    if not user.refresh_token:
        raise bad_request("Refresh token not found for user")

    if user.access_token and user.token_valid_at(ctx.now_ms()):
        return {"accessToken": user.access_token}

    token = await ctx.hh.refresh_access_token(user.refresh_token)
    # hh.ru may omit refresh_token; keep the stored one in that case
    new_refresh_token = token.refresh_token or user.refresh_token

    await ctx.users.update_tokens(
        user_id,
        token.access_token,
        new_refresh_token,
        ctx.now_ms() + token.expires_in * 1000,
    )
    logger.info("Refreshed hh.ru access token for user: %s", user_id)
    return {"accessToken": token.access_token}
