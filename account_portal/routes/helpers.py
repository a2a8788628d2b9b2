"""
Route helpers
Rendering form views as JSON responses and session cookie handling
"""

from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse

from account_portal.forms.base import FormView
from account_portal.mutations.errors import ErrorKind
from account_portal.utils.config import Settings
from account_portal.utils.dependencies import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE

ERROR_STATUS_CODES = {
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.REMOTE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NETWORK: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def render_view(view: FormView) -> JSONResponse:
    """Form view as JSON; failures map to an HTTP status by error kind"""
    status_code = status.HTTP_200_OK
    if view.is_error:
        kind = view.error.kind if view.error else ErrorKind.UNKNOWN
        status_code = ERROR_STATUS_CODES[kind]
    return JSONResponse(status_code=status_code, content=view.to_dict())


def store_session(response: JSONResponse, session: Any, settings: Settings) -> None:
    if session is None:
        return
    max_age = getattr(session, "expires_in", None)
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        session.access_token,
        max_age=max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax"
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        session.refresh_token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax"
    )


def clear_session(response: JSONResponse) -> None:
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE)
