"""
SignalDesk - Entitlement Model
Decides whether a user may view a piece of content from role, subscription tier
and the content's access level. Pure functions, no I/O.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any


class Role(Enum):
    USER = "user"
    PREMIUM = "premium"
    ANALYST = "analyst"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value) -> "Role":
        """Unknown or missing roles collapse to USER"""
        if isinstance(value, Role):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.USER


class AccessLevel(Enum):
    PUBLIC = "public"
    PREMIUM = "premium"
    PRO = "pro"
    ANALYST = "analyst"
    ADMIN = "admin"


class AccessReason(Enum):
    LOGIN_REQUIRED = "login_required"
    UPGRADE_REQUIRED = "upgrade_required"
    ANALYST_REQUIRED = "analyst_required"
    ADMIN_REQUIRED = "admin_required"
    INSUFFICIENT_PERMISSIONS = "insufficient_permissions"


# Subscription tiers in order of increasing privilege
TIER_ORDER = {
    'free': 0,
    'basic': 1,
    'premium': 2,
    'enterprise': 3,
}

PRO_TIER_NAME = 'Pro'


@dataclass
class SubscriptionInfo:
    tier: str
    premium_access: bool = False
    features: List[str] = field(default_factory=list)


@dataclass
class AccessFlags:
    research: bool = False
    analysis: bool = False
    signals: bool = False
    premium_content: bool = False
    analyst_content: bool = False
    admin_content: bool = False


@dataclass
class UserAccess:
    user_id: Optional[str]
    role: Role = Role.USER
    subscription: Optional[SubscriptionInfo] = None
    can_access: AccessFlags = field(default_factory=AccessFlags)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'role': self.role.value,
            'subscription': {
                'tier': self.subscription.tier,
                'premiumAccess': self.subscription.premium_access,
                'features': self.subscription.features,
            } if self.subscription else None,
            'canAccess': {
                'research': self.can_access.research,
                'analysis': self.can_access.analysis,
                'signals': self.can_access.signals,
                'premiumContent': self.can_access.premium_content,
                'analystContent': self.can_access.analyst_content,
                'adminContent': self.can_access.admin_content,
            },
        }


@dataclass
class ContentAccess:
    access_level: AccessLevel = AccessLevel.PUBLIC
    requires_subscription: bool = False
    allowed_roles: List[Role] = field(default_factory=lambda: list(Role))


@dataclass
class AccessResult:
    has_access: bool
    reason: Optional[AccessReason] = None
    message: Optional[str] = None
    upgrade_required: bool = False
    login_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hasAccess': self.has_access,
            'reason': self.reason.value if self.reason else None,
            'message': self.message,
            'upgradeRequired': self.upgrade_required,
            'loginRequired': self.login_required,
        }


def anonymous_access() -> UserAccess:
    """Signed-out visitors can read public research only"""
    return UserAccess(user_id=None, can_access=AccessFlags(research=True))


def build_user_access(
    user_id: str,
    role,
    subscription: Optional[SubscriptionInfo] = None,
    is_premium: bool = False
) -> UserAccess:
    """Derive capability flags for a signed-in user"""
    role = Role.parse(role)
    staff = role in (Role.ANALYST, Role.ADMIN)
    premium_tier = bool(subscription and subscription.premium_access)

    return UserAccess(
        user_id=user_id,
        role=role,
        subscription=subscription,
        can_access=AccessFlags(
            research=True,
            analysis=True,
            signals=True,
            premium_content=premium_tier or is_premium or staff,
            analyst_content=staff,
            admin_content=role == Role.ADMIN,
        )
    )


def get_content_access_level(content: Optional[Dict[str, Any]]) -> ContentAccess:
    """
    Read the access requirement off a CMS document.

    A truthy `premium` flag wins over `accessLevel`; anything unrecognised is public.
    """
    content = content or {}
    level = content.get('accessLevel')

    if content.get('premium') or level == AccessLevel.PREMIUM.value:
        return ContentAccess(
            access_level=AccessLevel.PREMIUM,
            requires_subscription=True,
            allowed_roles=[Role.PREMIUM, Role.ANALYST, Role.ADMIN],
        )
    if level == AccessLevel.PRO.value:
        return ContentAccess(
            access_level=AccessLevel.PRO,
            requires_subscription=True,
            allowed_roles=[Role.ANALYST, Role.ADMIN],
        )
    if level == AccessLevel.ANALYST.value:
        return ContentAccess(
            access_level=AccessLevel.ANALYST,
            allowed_roles=[Role.ANALYST, Role.ADMIN],
        )
    if level == AccessLevel.ADMIN.value:
        return ContentAccess(
            access_level=AccessLevel.ADMIN,
            allowed_roles=[Role.ADMIN],
        )
    return ContentAccess()


def _has_pro_tier(user: UserAccess) -> bool:
    return bool(user.subscription and user.subscription.tier == PRO_TIER_NAME)


def can_access_content(user: UserAccess, content: ContentAccess) -> bool:
    if user.role == Role.ADMIN:
        return True

    if user.role in content.allowed_roles:
        return True

    level = content.access_level
    if level == AccessLevel.PUBLIC:
        return True
    if level == AccessLevel.PREMIUM:
        return user.can_access.premium_content
    if level == AccessLevel.PRO:
        return user.can_access.premium_content and (
            _has_pro_tier(user) or user.role in (Role.ANALYST, Role.ADMIN)
        )
    if level == AccessLevel.ANALYST:
        return user.can_access.analyst_content
    if level == AccessLevel.ADMIN:
        return user.can_access.admin_content
    return False


def check_access(user: UserAccess, content: ContentAccess) -> AccessResult:
    """Allow/deny plus the reason the caller should act on"""
    if not user.is_authenticated and content.access_level != AccessLevel.PUBLIC:
        return AccessResult(
            has_access=False,
            reason=AccessReason.LOGIN_REQUIRED,
            message='Login required to access this content',
            login_required=True,
        )

    if can_access_content(user, content):
        return AccessResult(has_access=True)

    if content.requires_subscription and not user.can_access.premium_content:
        return AccessResult(
            has_access=False,
            reason=AccessReason.UPGRADE_REQUIRED,
            message='Premium subscription required',
            upgrade_required=True,
        )

    if content.access_level == AccessLevel.PRO:
        return AccessResult(
            has_access=False,
            reason=AccessReason.UPGRADE_REQUIRED,
            message='Pro subscription required',
            upgrade_required=True,
        )

    if content.access_level == AccessLevel.ANALYST and not user.can_access.analyst_content:
        return AccessResult(
            has_access=False,
            reason=AccessReason.ANALYST_REQUIRED,
            message='Analyst access required',
            upgrade_required=True,
        )

    if content.access_level == AccessLevel.ADMIN and not user.can_access.admin_content:
        return AccessResult(
            has_access=False,
            reason=AccessReason.ADMIN_REQUIRED,
            message='Admin access required',
        )

    return AccessResult(
        has_access=False,
        reason=AccessReason.INSUFFICIENT_PERMISSIONS,
        message='Insufficient permissions',
    )


def meets_tier(user_tier: Optional[str], required_tier: str) -> bool:
    """True when user_tier is at or above required_tier; unknown tiers rank as free"""
    user_rank = TIER_ORDER.get((user_tier or 'free').lower(), 0)
    required_rank = TIER_ORDER.get(required_tier.lower(), 0)
    return user_rank >= required_rank
