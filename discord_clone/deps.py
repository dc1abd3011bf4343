from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from discord_clone.adapter import Adapter
from discord_clone.auth import AuthOptions
from discord_clone.database import Database


def get_database(request: Request) -> Database:
    return request.app.state.database

async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    async with get_database(request).session() as db:
        yield db

def get_adapter(request: Request) -> Adapter:
    return request.app.state.adapter

def get_auth_options(request: Request) -> AuthOptions:
    return request.app.state.auth_options
