from fastapi import Header, HTTPException, status, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from safetyband.core.config import Settings
from safetyband.core.deps import get_db_session, get_settings_dep
from safetyband.core.security import verify_token, TokenClaims
from safetyband.models.user import User
from safetyband.services.users import get_user


async def get_current_claims(
    authorization: str | None = Header(default=None),
    x_auth_token: str | None = Header(default=None),
    settings: Settings = Depends(get_settings_dep),
) -> TokenClaims:
    """Bearer token, or the legacy ``x-auth-token`` header used by older app builds."""
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1]
    elif x_auth_token:
        token = x_auth_token
    else:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No token, authorization denied")
    return verify_token(token, settings, expected_typ="access")


async def get_current_user(
    claims: TokenClaims = Depends(get_current_claims),
    session: AsyncSession = Depends(get_db_session),
) -> User:
    user = await get_user(session, claims.sub)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User no longer exists")
    return user
