"""FastAPI dependencies resolving the caller and shared collaborators."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.models import User, get_db
from chathub.security import decode_access_token
from chathub.services.link_unfurler import LinkUnfurler

bearer_scheme = HTTPBearer(auto_error=False)

_link_unfurler: LinkUnfurler | None = None


def get_link_unfurler() -> LinkUnfurler:
    global _link_unfurler
    if _link_unfurler is None:
        _link_unfurler = LinkUnfurler()
    return _link_unfurler


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> int:
    """Resolve the bearer token to an existing user's id."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    token_data = decode_access_token(credentials.credentials)
    if token_data is None:
        raise credentials_exception

    result = await db.execute(select(User.id).where(User.id == token_data.user_id))
    if result.scalar_one_or_none() is None:
        raise credentials_exception

    return token_data.user_id
