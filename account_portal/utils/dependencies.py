"""
FastAPI Dependencies
Settings, remote client, invalidation bus and authentication dependencies
"""

import logging
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status

from account_portal.mutations.invalidation import InvalidationBus
from account_portal.mutations.query import QueryCache
from account_portal.services.auth_service import AuthService
from account_portal.utils.config import Settings, get_settings
from account_portal.utils.supabase_client import RemoteClient, create_remote_client

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "sb-access-token"
REFRESH_TOKEN_COOKIE = "sb-refresh-token"

SettingsDep = Annotated[Settings, Depends(get_settings)]


async def get_remote_client(request: Request, settings: SettingsDep) -> RemoteClient:
    """Remote client carrying the caller's session from cookies"""
    try:
        return await create_remote_client(
            settings,
            access_token=request.cookies.get(ACCESS_TOKEN_COOKIE),
            refresh_token=request.cookies.get(REFRESH_TOKEN_COOKIE)
        )
    except RuntimeError as e:
        logger.error(f"Remote client unavailable: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service not configured"
        )


def get_invalidation_bus(request: Request) -> InvalidationBus:
    return request.app.state.invalidation_bus


def get_query_cache(request: Request) -> QueryCache:
    return request.app.state.query_cache


RemoteClientDep = Annotated[RemoteClient, Depends(get_remote_client)]
InvalidationBusDep = Annotated[InvalidationBus, Depends(get_invalidation_bus)]
QueryCacheDep = Annotated[QueryCache, Depends(get_query_cache)]


async def get_current_user(remote: RemoteClientDep) -> Any:
    """
    Get the signed-in user from the remote identity service

    Raises:
        HTTPException: 401 when there is no usable session
    """
    user = await AuthService.get_user(remote)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return user


CurrentUser = Annotated[Any, Depends(get_current_user)]
