"""
SignalDesk - Data Models
SQLAlchemy ORM models and the entitlement model
"""
from signaldesk.models.db_models import (
    DBUser as User,
    DBSubscriptionTier as SubscriptionTier,
    DBUserSubscription as UserSubscription,
    DBChain as Chain,
    DBToken as Token,
    DBTokenList as TokenList,
    DBWebhookLog as WebhookLog,
    UserRole,
    PaymentStatus,
)
from signaldesk.models.access import (
    Role,
    AccessLevel,
    AccessReason,
    UserAccess,
    ContentAccess,
    AccessResult,
    check_access,
    get_content_access_level,
)

__all__ = [
    'User',
    'SubscriptionTier',
    'UserSubscription',
    'Chain',
    'Token',
    'TokenList',
    'WebhookLog',
    'UserRole',
    'PaymentStatus',
    'Role',
    'AccessLevel',
    'AccessReason',
    'UserAccess',
    'ContentAccess',
    'AccessResult',
    'check_access',
    'get_content_access_level',
]
