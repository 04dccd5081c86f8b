"""Admin authentication dependency."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials

from paygate.core.container import ApplicationContainer
from paygate.core.security import ADMIN_ROLE, TokenData, decode_access_token, security

from .container import get_container


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    container: ApplicationContainer = Depends(get_container),
) -> TokenData:
    token_data = decode_access_token(credentials.credentials, container.settings)
    if token_data.role != ADMIN_ROLE or token_data.username != container.settings.security.admin_username:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="需要管理员权限")
    return token_data
