from typing import Annotated, AsyncGenerator, Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing_extensions import TypeAlias

from core.async_engine import AsyncSessionLocal
from core.auth import bearer_scheme, verify_token
from core.exceptions import UnauthorizedError


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session

AsyncDBSession: TypeAlias = Annotated[AsyncSession, Depends(get_session)]


async def get_optional_user_id(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)]
) -> Optional[UUID]:
    if credentials is None:
        return None
    return verify_token(credentials.credentials)


async def get_current_user_id(
    user_id: Annotated[Optional[UUID], Depends(get_optional_user_id)]
) -> UUID:
    if user_id is None:
        raise UnauthorizedError("Could not validate credentials")
    return user_id

OptionalUserId: TypeAlias = Annotated[Optional[UUID], Depends(get_optional_user_id)]
AuthenticatedUserId: TypeAlias = Annotated[UUID, Depends(get_current_user_id)]
