"""
Profile Service
Reads and updates of the remote profiles table
"""

import logging
from functools import partial
from typing import Any, Dict, Optional, Tuple

from account_portal.mutations.errors import UserFacingError
from account_portal.mutations.executor import MutationExecutor
from account_portal.mutations.invalidation import CacheScope, InvalidationBus
from account_portal.mutations.query import Query
from account_portal.schemas.user import Profile
from account_portal.utils.supabase_client import RemoteClient

logger = logging.getLogger(__name__)


def profile_query_key(profile_id: str) -> Tuple[str, str]:
    return ("profiles", profile_id)


class ProfileService:
    """Profile store operations"""

    @staticmethod
    async def get_profile(client: RemoteClient, profile_id: str) -> Optional[Profile]:
        """
        Fetch a profile by id

        Returns:
            Profile, or None when no row exists
        """
        row = (await client.get_profile(profile_id)).unwrap()
        if row is None:
            logger.info(f"No profile found for: {profile_id}")
            return None
        return Profile.model_validate(row)

    @staticmethod
    async def update_profile(client: RemoteClient, patch: Dict[str, Any]) -> Profile:
        """
        Update a profile

        Args:
            patch: Must contain ``id`` plus the columns to change
        """
        row = (await client.update_profile(patch)).unwrap()
        if row is None:
            raise UserFacingError("Profile not found")
        logger.info(f"Profile updated: {patch['id']}")
        return Profile.model_validate(row)


def profile_query(
    client: RemoteClient,
    profile_id: str,
    bus: Optional[InvalidationBus] = None,
    **options
) -> Query:
    """Query for one profile that re-fetches on profile invalidation"""
    return Query(
        profile_query_key(profile_id),
        partial(ProfileService.get_profile, client, profile_id),
        invalidation_bus=bus,
        scope=CacheScope.PROFILE,
        **options
    )


def update_profile_mutation(client: RemoteClient, bus: Optional[InvalidationBus] = None, **options) -> MutationExecutor:
    return MutationExecutor(
        partial(ProfileService.update_profile, client),
        name="update_profile",
        invalidation_bus=bus,
        invalidates=CacheScope.PROFILE,
        **options
    )
