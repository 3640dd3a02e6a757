"""
SignalDesk - Catalogue Seed Data
Chains, base tokens and the default token list
"""
import logging

from signaldesk.database import db
from signaldesk.models.db_models import DBChain, DBToken, DBTokenList, DBSubscriptionTier, TokenType

logger = logging.getLogger(__name__)

CHAINS = [
    {
        'chain_id': 1,
        'name': 'Ethereum Mainnet',
        'native_token': 'ETH',
        'rpc_url': 'https://eth.llamarpc.com',
        'explorer_url': 'https://etherscan.io',
    },
    {
        'chain_id': 137,
        'name': 'Polygon',
        'native_token': 'MATIC',
        'rpc_url': 'https://polygon-rpc.com',
        'explorer_url': 'https://polygonscan.com',
    },
]

TOKENS = [
    # Ethereum
    {'chain_id': 1, 'address': '0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2', 'symbol': 'WETH',
     'name': 'Wrapped Ether', 'decimals': 18, 'coingecko_id': 'weth', 'token_type': TokenType.WRAPPED,
     'trading_view_symbol': 'COINBASE:ETHUSD'},
    {'chain_id': 1, 'address': '0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48', 'symbol': 'USDC',
     'name': 'USD Coin', 'decimals': 6, 'coingecko_id': 'usd-coin', 'token_type': TokenType.STABLECOIN},
    {'chain_id': 1, 'address': '0xdAC17F958D2ee523a2206206994597C13D831ec7', 'symbol': 'USDT',
     'name': 'Tether USD', 'decimals': 6, 'coingecko_id': 'tether', 'token_type': TokenType.STABLECOIN},
    {'chain_id': 1, 'address': '0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599', 'symbol': 'WBTC',
     'name': 'Wrapped BTC', 'decimals': 8, 'coingecko_id': 'wrapped-bitcoin', 'token_type': TokenType.WRAPPED,
     'trading_view_symbol': 'COINBASE:BTCUSD'},
    # Polygon
    {'chain_id': 137, 'address': '0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270', 'symbol': 'WMATIC',
     'name': 'Wrapped Matic', 'decimals': 18, 'coingecko_id': 'wmatic', 'token_type': TokenType.WRAPPED,
     'trading_view_symbol': 'BINANCE:MATICUSDT'},
    {'chain_id': 137, 'address': '0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174', 'symbol': 'USDC',
     'name': 'USD Coin (PoS)', 'decimals': 6, 'coingecko_id': 'usd-coin', 'token_type': TokenType.STABLECOIN},
    {'chain_id': 137, 'address': '0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619', 'symbol': 'WETH',
     'name': 'Wrapped Ether (PoS)', 'decimals': 18, 'coingecko_id': 'weth', 'token_type': TokenType.WRAPPED},
]

TIERS = [
    {'name': 'Free', 'premium_access': False, 'price_usd': 0.0, 'features': ['signals', 'research']},
    {'name': 'Premium', 'premium_access': True, 'price_usd': 49.0,
     'features': ['signals', 'research', 'premium_signals', 'analysis']},
    {'name': 'Pro', 'premium_access': True, 'price_usd': 149.0,
     'features': ['signals', 'research', 'premium_signals', 'analysis', 'pro_signals']},
]

DEFAULT_LIST_NAME = 'SignalDesk Default'


def seed_catalogue() -> dict:
    """
    Upsert chains, tokens, subscription tiers and the default token list.

    Safe to run repeatedly; returns counts of rows created this run.
    """
    created = {'chains': 0, 'tokens': 0, 'tiers': 0, 'token_lists': 0}

    for spec in CHAINS:
        chain = DBChain.query.filter_by(chain_id=spec['chain_id']).first()
        if not chain:
            chain = DBChain(chain_id=spec['chain_id'])
            db.session.add(chain)
            created['chains'] += 1
        for key, value in spec.items():
            setattr(chain, key, value)
    db.session.flush()

    tokens = []
    for spec in TOKENS:
        spec = dict(spec)
        address = spec.pop('address').lower()
        token = DBToken.query.filter_by(chain_id=spec['chain_id'], address=address).first()
        if not token:
            token = DBToken(address=address, **spec)
            db.session.add(token)
            created['tokens'] += 1
        else:
            for key, value in spec.items():
                setattr(token, key, value)
        tokens.append(token)

    for spec in TIERS:
        tier = DBSubscriptionTier.query.filter_by(name=spec['name']).first()
        if not tier:
            tier = DBSubscriptionTier(name=spec['name'])
            db.session.add(tier)
            created['tiers'] += 1
        tier.premium_access = spec['premium_access']
        tier.price_usd = spec['price_usd']
        tier.set_features(spec['features'])

    token_list = DBTokenList.query.filter_by(name=DEFAULT_LIST_NAME).first()
    if not token_list:
        token_list = DBTokenList(name=DEFAULT_LIST_NAME, description='Base tokens on supported chains')
        db.session.add(token_list)
        created['token_lists'] += 1
    token_list.is_default = True
    token_list.tokens = tokens

    db.session.commit()
    logger.info(f"Seeded catalogue: {created}")
    return created
