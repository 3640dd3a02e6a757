"""
SignalDesk - Access Service
Loads a user's entitlement inputs from the database and evaluates content access
"""
import logging
from typing import Optional, Dict, Any

from sqlalchemy.exc import SQLAlchemyError

from signaldesk.models.access import (
    UserAccess, AccessResult, SubscriptionInfo, AccessFlags, Role,
    anonymous_access, build_user_access, check_access, get_content_access_level
)
from signaldesk.services.db_service import DataService

logger = logging.getLogger(__name__)

data_service = DataService()


def get_user_access(user_id: Optional[str]) -> UserAccess:
    """Entitlements for a Clerk user id; None means signed out"""
    if not user_id:
        return anonymous_access()

    try:
        user = data_service.get_user_by_clerk_id(user_id)
        if not user:
            return build_user_access(user_id, Role.USER)

        subscription = None
        active = user.active_subscription()
        if active and active.tier:
            subscription = SubscriptionInfo(
                tier=active.tier.name,
                premium_access=active.tier.premium_access,
                features=active.tier.get_features(),
            )

        return build_user_access(user_id, user.role, subscription, is_premium=user.is_premium)
    except SQLAlchemyError as e:
        logger.error(f"Error loading access for {user_id}: {e}")
        # Signed in but profile unavailable: basic access only
        return UserAccess(
            user_id=user_id,
            can_access=AccessFlags(research=True, analysis=True, signals=True),
        )


def check_content_access(user_id: Optional[str], content: Optional[Dict[str, Any]]) -> AccessResult:
    return check_access(get_user_access(user_id), get_content_access_level(content))
