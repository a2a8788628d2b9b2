"""
Authentication Service
Auth operations delegated to the remote identity service, and the mutation
executors built on top of them
"""

import logging
from functools import partial
from typing import Any, Dict, Optional

from account_portal.mutations.errors import UserFacingError
from account_portal.mutations.executor import MutationExecutor
from account_portal.mutations.invalidation import CacheScope, InvalidationBus
from account_portal.utils.supabase_client import RemoteClient

logger = logging.getLogger(__name__)

LOGIN_FAILURE_MESSAGE = "Log in was not successful, please try again; ref: {digest}"


def is_anonymous_user(user: Any) -> bool:
    """Anonymous sign-ins carry the is_anonymous flag"""
    if user is None:
        return False
    if isinstance(user, dict):
        return bool(user.get("is_anonymous"))
    return bool(getattr(user, "is_anonymous", False))


class AuthService:
    """Remote auth operations; each raises on a returned or raised error"""

    @staticmethod
    async def sign_up_with_email_password(client: RemoteClient, credentials: Dict[str, Any]) -> Any:
        """
        Register with email and password

        Args:
            client: Remote identity client
            credentials: {email, password, options?}

        Returns:
            Sign-up response with the created user
        """
        data = (await client.sign_up(credentials)).unwrap()

        # Supabase answers a duplicate registration with a user that has no identities
        user = getattr(data, "user", None)
        if user is not None and getattr(user, "identities", None) == []:
            raise UserFacingError("User already registered")

        logger.info(f"Customer signed up: {credentials.get('email')}")
        return data

    @staticmethod
    async def sign_in_with_email_password(client: RemoteClient, credentials: Dict[str, Any]) -> Any:
        data = (await client.sign_in_with_password(credentials)).unwrap()
        logger.info(f"Customer signed in: {credentials.get('email')}")
        return data

    @staticmethod
    async def sign_up_with_email_otp(client: RemoteClient, credentials: Dict[str, Any]) -> None:
        """Send a one-time password, creating the user if needed"""
        options = {"should_create_user": True, **(credentials.get("options") or {})}
        (await client.sign_in_with_otp({"email": credentials["email"], "options": options})).unwrap()

    @staticmethod
    async def sign_in_with_email_otp(client: RemoteClient, credentials: Dict[str, Any]) -> None:
        """Send a one-time password to an existing user"""
        options = {"should_create_user": False, **(credentials.get("options") or {})}
        (await client.sign_in_with_otp({"email": credentials["email"], "options": options})).unwrap()
        logger.info(f"One-time password sent to: {credentials['email']}")

    @staticmethod
    async def verify_otp(client: RemoteClient, credentials: Dict[str, Any]) -> Any:
        data = (await client.verify_otp({
            "email": credentials["email"],
            "token": credentials["token"],
            "type": "email"
        })).unwrap()
        logger.info(f"One-time password verified for: {credentials['email']}")
        return data

    @staticmethod
    async def reset_password_for_email(client: RemoteClient, email: str, redirect_to: Optional[str] = None) -> None:
        options = {"redirect_to": redirect_to} if redirect_to else None
        (await client.reset_password_for_email(email, options)).unwrap()
        logger.info(f"Password reset email requested for: {email}")

    @staticmethod
    async def sign_out(client: RemoteClient, _request: Any = None) -> None:
        (await client.sign_out()).unwrap()
        logger.info("Customer signed out")

    @staticmethod
    async def update_user(client: RemoteClient, attributes: Dict[str, Any]) -> Any:
        data = (await client.update_user(attributes)).unwrap()
        logger.info(f"User attributes updated: {sorted(attributes)}")
        return data

    @staticmethod
    async def get_user(client: RemoteClient) -> Any:
        """Current user, or None when signed out or the session is unusable"""
        result = await client.get_user()
        if result.error is not None:
            logger.warning(f"Could not resolve current user: {result.error}")
            return None
        return result.data


# Executor factories. Every state-changing operation invalidates cached reads.

def sign_up_mutation(client: RemoteClient, bus: Optional[InvalidationBus] = None, **options) -> MutationExecutor:
    return MutationExecutor(
        partial(AuthService.sign_up_with_email_password, client),
        name="sign_up",
        invalidation_bus=bus,
        invalidates=CacheScope.ALL,
        **options
    )


def sign_in_mutation(client: RemoteClient, bus: Optional[InvalidationBus] = None, **options) -> MutationExecutor:
    options.setdefault("failure_message", LOGIN_FAILURE_MESSAGE)
    return MutationExecutor(
        partial(AuthService.sign_in_with_email_password, client),
        name="sign_in",
        invalidation_bus=bus,
        invalidates=CacheScope.ALL,
        **options
    )


def sign_up_otp_mutation(client: RemoteClient, bus: Optional[InvalidationBus] = None, **options) -> MutationExecutor:
    return MutationExecutor(
        partial(AuthService.sign_up_with_email_otp, client),
        name="sign_up_otp",
        invalidation_bus=bus,
        **options
    )


def sign_in_otp_mutation(client: RemoteClient, bus: Optional[InvalidationBus] = None, **options) -> MutationExecutor:
    options.setdefault("failure_message", LOGIN_FAILURE_MESSAGE)
    return MutationExecutor(
        partial(AuthService.sign_in_with_email_otp, client),
        name="sign_in_otp",
        invalidation_bus=bus,
        **options
    )


def verify_otp_mutation(client: RemoteClient, bus: Optional[InvalidationBus] = None, **options) -> MutationExecutor:
    return MutationExecutor(
        partial(AuthService.verify_otp, client),
        name="verify_otp",
        invalidation_bus=bus,
        invalidates=CacheScope.ALL,
        **options
    )


def reset_password_mutation(
    client: RemoteClient,
    bus: Optional[InvalidationBus] = None,
    redirect_to: Optional[str] = None,
    **options
) -> MutationExecutor:
    async def reset(email: str) -> None:
        await AuthService.reset_password_for_email(client, email, redirect_to)

    return MutationExecutor(reset, name="reset_password", invalidation_bus=bus, **options)


def sign_out_mutation(client: RemoteClient, bus: Optional[InvalidationBus] = None, **options) -> MutationExecutor:
    return MutationExecutor(
        partial(AuthService.sign_out, client),
        name="sign_out",
        invalidation_bus=bus,
        invalidates=CacheScope.ALL,
        **options
    )


def update_user_mutation(client: RemoteClient, bus: Optional[InvalidationBus] = None, **options) -> MutationExecutor:
    return MutationExecutor(
        partial(AuthService.update_user, client),
        name="update_user",
        invalidation_bus=bus,
        invalidates=CacheScope.ALL,
        **options
    )
