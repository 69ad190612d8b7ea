"""JWT revocation via a Redis blacklist.

Two kinds of entries, each kept until the revoked token would have
expired anyway:
  revoked:<token>        one token (a refresh token that was exchanged)
  revoked:session:<sid>  every token of one sign-in (signOut)

Lookups fail closed: if Redis cannot answer, the token is treated as
revoked.
"""

import logging
import time

from redis.exceptions import RedisError

from asset_intake.utils.cache import get_redis

logger = logging.getLogger(__name__)


async def _blacklist(key: str, expires_at: float) -> bool:
    ttl = int(expires_at - time.time())
    if ttl <= 0:
        # Already expired
        return True
    try:
        redis_client = await get_redis()
        await redis_client.setex(key, ttl, str(int(time.time())))
        return True
    except RedisError as e:
        logger.error(f"Failed to write revocation entry: {e}")
        return False


async def _is_listed(key: str) -> bool:
    try:
        redis_client = await get_redis()
        return await redis_client.exists(key) > 0
    except RedisError as e:
        logger.error(f"Failed to check token revocation: {e}")
        return True


class TokenRevocation:
    @staticmethod
    async def revoke_token(token: str, expires_at: float) -> bool:
        """Blacklist a token until `expires_at` (unix timestamp)."""
        return await _blacklist(f"revoked:{token}", expires_at)

    @staticmethod
    async def is_revoked(token: str) -> bool:
        return await _is_listed(f"revoked:{token}")

    @staticmethod
    async def revoke_session(session_id: str, expires_at: float) -> bool:
        """End a sign-in: its access and refresh tokens stop working."""
        return await _blacklist(f"revoked:session:{session_id}", expires_at)

    @staticmethod
    async def is_session_revoked(session_id: str) -> bool:
        return await _is_listed(f"revoked:session:{session_id}")
