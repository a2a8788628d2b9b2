"""
Page guards
Decide where a visitor belongs based on the current remote user
"""

from typing import Any, Optional, Tuple

from account_portal.services.auth_service import AuthService, is_anonymous_user
from account_portal.utils.config import RouteTable
from account_portal.utils.supabase_client import RemoteClient


async def resolve_login_page(client: RemoteClient, routes: RouteTable) -> Optional[str]:
    """Signed-in visitors skip the login page; returns the redirect or None"""
    user = await AuthService.get_user(client)
    if user is None:
        return None
    return routes.anonymous_user_home if is_anonymous_user(user) else routes.sign_in_success


async def require_user(client: RemoteClient, routes: RouteTable) -> Tuple[Any, Optional[str]]:
    """Returns (user, None), or (None, login redirect) for visitors"""
    user = await AuthService.get_user(client)
    if user is None:
        return None, routes.login_page
    return user, None
