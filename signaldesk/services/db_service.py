"""
SignalDesk - Database Service
PostgreSQL-backed data operations for profiles, catalogue and signal bookkeeping
"""
from typing import Optional, List, Dict
from datetime import datetime
import logging

from sqlalchemy import func

from signaldesk.database import db
from signaldesk.models.db_models import (
    DBUser, DBChain, DBToken, DBTokenList, DBAnalystProfile,
    DBSignalPerformance, DBSignalAnalytics, UserRole, PaymentStatus
)

logger = logging.getLogger(__name__)


class DataService:
    """Database-backed data service"""

    def _commit(self):
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    # ============================================
    # User Profiles
    # ============================================

    def get_user_by_clerk_id(self, clerk_user_id: str) -> Optional[DBUser]:
        if not clerk_user_id:
            return None
        return DBUser.query.filter_by(clerk_user_id=clerk_user_id).first()

    def get_user_by_customer_id(self, customer_id: str) -> Optional[DBUser]:
        """Get user by BoomFi customer ID"""
        if not customer_id:
            return None
        return DBUser.query.filter_by(boomfi_customer_id=customer_id).first()

    def create_user_profile(self, clerk_user_id: str, email: str = '', name: str = '') -> DBUser:
        """Create a fresh profile, or return the existing one for this Clerk user"""
        existing = self.get_user_by_clerk_id(clerk_user_id)
        if existing:
            return existing

        user = DBUser(clerk_user_id=clerk_user_id, email=email, name=name)
        db.session.add(user)
        self._commit()
        logger.info(f"Created profile {user.id} for {clerk_user_id}")
        return user

    def update_user_role(self, clerk_user_id: str, role: str) -> Optional[DBUser]:
        if role not in UserRole.ALL:
            raise ValueError(f"Unknown role: {role}")
        user = self.get_user_by_clerk_id(clerk_user_id)
        if not user:
            return None
        user.role = role
        self._commit()
        return user

    def merge_public_metadata(self, clerk_user_id: str, updates: Dict) -> Optional[DBUser]:
        """Merge keys into the locally mirrored Clerk public metadata"""
        user = self.get_user_by_clerk_id(clerk_user_id)
        if not user:
            return None
        metadata = user.get_public_metadata()
        metadata.update(updates)
        user.set_public_metadata(metadata)
        self._commit()
        return user

    def set_customer_id(self, user: DBUser, customer_id: str) -> DBUser:
        user.boomfi_customer_id = customer_id
        self._commit()
        return user

    def get_premium_status(self, clerk_user_id: str) -> bool:
        try:
            user = self.get_user_by_clerk_id(clerk_user_id)
            return bool(user and user.is_premium)
        except Exception as e:
            logger.error(f"Error getting premium status: {e}")
            return False

    def set_payment_state(
        self,
        user: DBUser,
        is_premium: bool,
        payment_status: Optional[str] = None,
        subscription_id: Optional[str] = None,
        paid_at: Optional[datetime] = None
    ) -> DBUser:
        """Copy the provider's view of a customer onto the local row (last write wins)"""
        user.is_premium = is_premium
        if payment_status:
            user.payment_status = payment_status
        if subscription_id:
            user.subscription_id = subscription_id
        if paid_at:
            user.last_payment_date = paid_at
        self._commit()
        return user

    def mark_premium(self, user: DBUser, subscription_id: Optional[str] = None) -> DBUser:
        return self.set_payment_state(
            user,
            is_premium=True,
            payment_status=PaymentStatus.ACTIVE,
            subscription_id=subscription_id,
            paid_at=datetime.utcnow()
        )

    def deactivate_user(self, clerk_user_id: str) -> bool:
        user = self.get_user_by_clerk_id(clerk_user_id)
        if not user:
            return False
        user.is_active = False
        self._commit()
        return True

    # ============================================
    # Token Catalogue
    # ============================================

    def list_tokens(
        self,
        chain_id: Optional[int] = None,
        symbol: Optional[str] = None,
        address: Optional[str] = None
    ) -> List[DBToken]:
        query = DBToken.query
        if chain_id is not None:
            query = query.filter_by(chain_id=chain_id)
        if symbol:
            query = query.filter_by(symbol=symbol)
        if address:
            query = query.filter_by(address=address.lower())
        return query.order_by(DBToken.id).all()

    def find_tokens_by_symbols(self, symbols: List[str], chain_id: Optional[int] = None) -> List[DBToken]:
        """Tokens whose symbol matches any of `symbols`, ignoring case"""
        wanted = {s.strip().lower() for s in symbols if s and s.strip()}
        if not wanted:
            return []
        query = DBToken.query.filter(func.lower(DBToken.symbol).in_(sorted(wanted)))
        if chain_id is not None:
            query = query.filter_by(chain_id=chain_id)
        return query.order_by(DBToken.id).all()

    def list_chains(self, chain_id: Optional[int] = None, name: Optional[str] = None) -> List[DBChain]:
        query = DBChain.query
        if chain_id is not None:
            query = query.filter_by(chain_id=chain_id)
        if name:
            query = query.filter_by(name=name)
        return query.order_by(DBChain.chain_id).all()

    def list_token_lists(self) -> List[DBTokenList]:
        """Default list first"""
        return DBTokenList.query.order_by(DBTokenList.is_default.desc(), DBTokenList.id).all()

    # ============================================
    # Signal Bookkeeping
    # ============================================

    def get_or_create_analyst_profile(self, user_id: str) -> DBAnalystProfile:
        profile = DBAnalystProfile.query.filter_by(user_id=user_id).first()
        if profile:
            return profile

        profile = DBAnalystProfile(user_id=user_id)
        db.session.add(profile)
        self._commit()
        logger.info(f"Created analyst profile {profile.id} for {user_id}")
        return profile

    def create_signal_records(
        self,
        signal_id: str,
        analyst: DBAnalystProfile,
        entry_price: float,
        status: str = 'active'
    ) -> DBSignalPerformance:
        """Performance starts at the entry price; analytics counters start at zero"""
        performance = DBSignalPerformance(
            signal_id=signal_id,
            analyst_id=analyst.id,
            entry_price=entry_price,
            current_price=entry_price,
            unrealized_pnl=0.0,
            realized_pnl=0.0,
            status=status,
        )
        analytics = DBSignalAnalytics(signal_id=signal_id)
        db.session.add(performance)
        db.session.add(analytics)
        self._commit()
        return performance

    def get_signal_records(self, signal_ids: List[str]) -> Dict[str, Dict]:
        """Map signal id -> {'performance': ..., 'analytics': ...}"""
        if not signal_ids:
            return {}

        records = {sid: {'performance': None, 'analytics': None} for sid in signal_ids}

        for perf in DBSignalPerformance.query.filter(DBSignalPerformance.signal_id.in_(signal_ids)).all():
            records[perf.signal_id]['performance'] = perf.to_dict()
        for stats in DBSignalAnalytics.query.filter(DBSignalAnalytics.signal_id.in_(signal_ids)).all():
            records[stats.signal_id]['analytics'] = stats.to_dict()

        return records
