"""
SignalDesk - SQLAlchemy Database Models
User profiles, payment state, token catalogue and signal bookkeeping
"""
from datetime import datetime
from typing import Optional, List
import uuid
import json

from sqlalchemy import (
    String, Text, Integer, Float, Boolean, DateTime, ForeignKey, Table, Column, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from signaldesk.database import db


def safe_json_loads(value, default=None):
    """Safely parse JSON, returning default if None or invalid"""
    if default is None:
        default = {}
    if not value:
        return default
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return default


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ============================================
# User Profile
# ============================================

class UserRole:
    USER = 'user'
    PREMIUM = 'premium'
    ANALYST = 'analyst'
    ADMIN = 'admin'

    ALL = [USER, PREMIUM, ANALYST, ADMIN]


class PaymentStatus:
    INACTIVE = 'inactive'
    ACTIVE = 'active'
    PAST_DUE = 'past_due'
    CANCELED = 'canceled'


class DBUser(db.Model):
    """Local profile for a Clerk user, carrying role and payment state"""
    __tablename__ = 'users'

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    clerk_user_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), default='')
    name: Mapped[str] = mapped_column(String(255), default='')
    role: Mapped[str] = mapped_column(String(20), default=UserRole.USER)

    # Payment state mirrored from BoomFi
    is_premium: Mapped[bool] = mapped_column(Boolean, default=False)
    boomfi_customer_id: Mapped[Optional[str]] = mapped_column(String(100), unique=True, nullable=True, index=True)
    payment_status: Mapped[str] = mapped_column(String(30), default=PaymentStatus.INACTIVE)
    subscription_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    public_metadata: Mapped[str] = mapped_column(Text, default='{}')  # JSON object
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    subscriptions: Mapped[List['DBUserSubscription']] = relationship(back_populates='user', cascade='all, delete-orphan')

    def __init__(self, clerk_user_id: str, email: str = '', **kwargs):
        self.id = f"user_{uuid.uuid4().hex[:12]}"
        self.clerk_user_id = clerk_user_id
        self.email = (email or '').lower()
        self.role = UserRole.USER
        self.is_premium = False
        self.payment_status = PaymentStatus.INACTIVE
        self.public_metadata = '{}'
        self.is_active = True
        self.created_at = datetime.utcnow()
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def get_public_metadata(self) -> dict:
        return safe_json_loads(self.public_metadata, {})

    def set_public_metadata(self, metadata: dict):
        self.public_metadata = json.dumps(metadata)

    def active_subscription(self) -> Optional['DBUserSubscription']:
        for subscription in self.subscriptions:
            if subscription.status == 'active':
                return subscription
        return None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'clerk_user_id': self.clerk_user_id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'is_premium': self.is_premium,
            'payment_status': self.payment_status,
            'subscription_id': self.subscription_id,
            'last_payment_date': _isoformat(self.last_payment_date),
            'is_active': self.is_active,
            'created_at': _isoformat(self.created_at),
        }


class DBSubscriptionTier(db.Model):
    """Purchasable plan; premium_access unlocks premium content"""
    __tablename__ = 'subscription_tiers'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    premium_access: Mapped[bool] = mapped_column(Boolean, default=False)
    features: Mapped[str] = mapped_column(Text, default='[]')  # JSON array
    price_usd: Mapped[float] = mapped_column(Float, default=0.0)

    def get_features(self) -> List[str]:
        return safe_json_loads(self.features, [])

    def set_features(self, features: List[str]):
        self.features = json.dumps(features)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'premium_access': self.premium_access,
            'features': self.get_features(),
            'price_usd': self.price_usd,
        }


class DBUserSubscription(db.Model):
    __tablename__ = 'user_subscriptions'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(ForeignKey('users.id'), index=True)
    tier_id: Mapped[int] = mapped_column(ForeignKey('subscription_tiers.id'))
    status: Mapped[str] = mapped_column(String(30), default='active')  # active, canceled, expired
    started_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    user: Mapped[DBUser] = relationship(back_populates='subscriptions')
    tier: Mapped[DBSubscriptionTier] = relationship()


# ============================================
# Token Catalogue
# ============================================

class TokenType:
    CRYPTO = 'crypto'
    STABLECOIN = 'stablecoin'
    WRAPPED = 'wrapped'
    NATIVE = 'native'


token_list_tokens = Table(
    'token_list_tokens',
    db.metadata,
    Column('token_list_id', ForeignKey('token_lists.id'), primary_key=True),
    Column('token_id', ForeignKey('tokens.id'), primary_key=True),
)


class DBChain(db.Model):
    __tablename__ = 'chains'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chain_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    native_token: Mapped[str] = mapped_column(String(20), default='')
    rpc_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    explorer_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'chainId': self.chain_id,
            'name': self.name,
            'nativeToken': self.native_token,
            'rpcUrl': self.rpc_url,
            'explorerUrl': self.explorer_url,
        }


class DBToken(db.Model):
    __tablename__ = 'tokens'
    __table_args__ = (
        UniqueConstraint('chain_id', 'address', name='uq_token_chain_address'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chain_id: Mapped[int] = mapped_column(ForeignKey('chains.chain_id'), index=True)
    address: Mapped[str] = mapped_column(String(100), nullable=False)  # stored lower-case
    symbol: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    decimals: Mapped[int] = mapped_column(Integer, default=18)
    logo_uri: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    coingecko_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    trading_view_symbol: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    token_type: Mapped[str] = mapped_column(String(20), default=TokenType.CRYPTO)

    chain: Mapped[DBChain] = relationship()

    def __init__(self, chain_id: int, address: str, symbol: str, name: str, **kwargs):
        self.chain_id = chain_id
        self.address = address.lower()
        self.symbol = symbol
        self.name = name
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def get_trading_view_symbol(self) -> str:
        """Explicit symbol, else COINBASE pair on mainnet, else bare USD pair"""
        if self.trading_view_symbol:
            return self.trading_view_symbol
        if self.chain_id == 1:
            return f"COINBASE:{self.symbol.upper()}USD"
        return f"{self.symbol.upper()}USD"

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'chainId': self.chain_id,
            'address': self.address,
            'symbol': self.symbol,
            'name': self.name,
            'decimals': self.decimals,
            'logoURI': self.logo_uri,
            'coingeckoId': self.coingecko_id,
            'type': self.token_type,
            'tradingViewSymbol': self.get_trading_view_symbol(),
        }


class DBTokenList(db.Model):
    __tablename__ = 'token_lists'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    tokens: Mapped[List[DBToken]] = relationship(secondary=token_list_tokens)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'isDefault': self.is_default,
            'tokens': [
                {'id': t.id, 'symbol': t.symbol, 'name': t.name}
                for t in self.tokens
            ],
        }


# ============================================
# Signal Bookkeeping (signal documents live in the CMS)
# ============================================

class DBAnalystProfile(db.Model):
    __tablename__ = 'analyst_profiles'

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    tier: Mapped[str] = mapped_column(String(30), default='basic')
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def __init__(self, user_id: str, **kwargs):
        self.id = f"analyst_{uuid.uuid4().hex[:12]}"
        self.user_id = user_id
        suffix = user_id[-6:]
        self.display_name = f"Analyst {suffix}"
        self.slug = f"analyst-{suffix.lower()}"
        self.tier = 'basic'
        self.is_active = True
        self.is_verified = False
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'userId': self.user_id,
            'displayName': self.display_name,
            'slug': self.slug,
            'tier': self.tier,
            'isActive': self.is_active,
            'isVerified': self.is_verified,
        }


class DBSignalPerformance(db.Model):
    __tablename__ = 'signal_performance'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    signal_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    analyst_id: Mapped[str] = mapped_column(ForeignKey('analyst_profiles.id'))
    entry_price: Mapped[float] = mapped_column(Float, nullable=False)
    current_price: Mapped[float] = mapped_column(Float, nullable=False)
    unrealized_pnl: Mapped[float] = mapped_column(Float, default=0.0)
    realized_pnl: Mapped[float] = mapped_column(Float, default=0.0)
    status: Mapped[str] = mapped_column(String(20), default='active')
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    analyst: Mapped[DBAnalystProfile] = relationship()

    def to_dict(self) -> dict:
        return {
            'signalId': self.signal_id,
            'analyst': self.analyst.to_dict() if self.analyst else None,
            'entryPrice': self.entry_price,
            'currentPrice': self.current_price,
            'unrealizedPnl': self.unrealized_pnl,
            'realizedPnl': self.realized_pnl,
            'status': self.status,
        }


class DBSignalAnalytics(db.Model):
    __tablename__ = 'signal_analytics'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    signal_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    views: Mapped[int] = mapped_column(Integer, default=0)
    likes: Mapped[int] = mapped_column(Integer, default=0)
    shares: Mapped[int] = mapped_column(Integer, default=0)
    comments: Mapped[int] = mapped_column(Integer, default=0)
    followers: Mapped[int] = mapped_column(Integer, default=0)

    def to_dict(self) -> dict:
        return {
            'signalId': self.signal_id,
            'views': self.views,
            'likes': self.likes,
            'shares': self.shares,
            'comments': self.comments,
            'followers': self.followers,
        }


# ============================================
# Inbound Webhook Log
# ============================================

class DBWebhookLog(db.Model):
    """One row per provider event; event_id uniqueness makes redelivery a no-op"""
    __tablename__ = 'webhook_logs'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(150), unique=True, index=True)
    provider: Mapped[str] = mapped_column(String(30), index=True)  # boomfi, clerk
    event_type: Mapped[str] = mapped_column(String(100), index=True)
    payload: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(30), default='received')  # received, processed, ignored, error
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __init__(self, event_id: str, event_type: str, **kwargs):
        self.event_id = event_id
        self.event_type = event_type
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'event_id': self.event_id,
            'provider': self.provider,
            'event_type': self.event_type,
            'status': self.status,
            'error_message': self.error_message,
            'user_id': self.user_id,
            'created_at': _isoformat(self.created_at),
            'processed_at': _isoformat(self.processed_at),
        }
