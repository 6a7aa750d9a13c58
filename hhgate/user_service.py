from typing import List

from .context import AppContext
from .user import CreateUserRequest, User


async def create_user(ctx: AppContext, user_data: CreateUserRequest) -> User:
    return await ctx.users.create(user_data)


async def get_all_users(ctx: AppContext) -> List[User]:
    return await ctx.users.find_all()


async def get_user_by_id(ctx: AppContext, user_id: str) -> User:
    return await ctx.users.find_by_id(user_id)
