import logging
import secrets
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

import asyncpg

from invoice_aggregator.core.config import settings
from invoice_aggregator.core.exceptions import QueryError
from invoice_aggregator.schemas.auth import TokenCheck

logger = logging.getLogger(__name__)

ADMIN_TOKEN_QUERY = "SELECT login_token, token_expiry FROM admins WHERE id = $1"
ADMIN_TOKEN_UPDATE = "UPDATE admins SET login_token = $1, token_expiry = $2 WHERE id = $3"


def generate_token() -> str:
    return secrets.token_hex(32)


class AuthGateway(ABC):
    @abstractmethod
    async def is_token_valid(self, token: str, principal_id: int) -> TokenCheck:
        pass


class PostgresAuthGateway(AuthGateway):
    """
    Admin session token check.

    A token that matches but has expired is rotated: a fresh token with a new
    expiry is stored and handed back as ``refreshed_token``.
    """

    def __init__(self, pool: asyncpg.Pool, ttl_seconds: int = None):
        self.pool = pool
        self.ttl = timedelta(seconds=ttl_seconds or settings.TOKEN_TTL_SECONDS)

    async def is_token_valid(self, token: str, principal_id: int) -> TokenCheck:
        try:
            async with self.pool.acquire() as connection:
                row = await connection.fetchrow(ADMIN_TOKEN_QUERY, principal_id)
                if row is None:
                    return TokenCheck(valid=False, message="Admin not found")
                stored = row["login_token"]
                if not stored or not secrets.compare_digest(token.encode(), stored.encode()):
                    return TokenCheck(valid=False, message="Invalid token provided")

                now = datetime.now(timezone.utc)
                expiry = row["token_expiry"]
                # Naive expiries are stored in UTC and written back naive.
                naive = expiry is None or expiry.tzinfo is None
                if expiry is not None and naive:
                    expiry = expiry.replace(tzinfo=timezone.utc)
                if expiry is not None and expiry > now:
                    return TokenCheck(valid=True, message="Token is valid")

                new_token = generate_token()
                new_expiry = now + self.ttl
                if naive:
                    new_expiry = new_expiry.replace(tzinfo=None)
                await connection.execute(ADMIN_TOKEN_UPDATE, new_token, new_expiry, principal_id)
                logger.info(f"Token for admin {principal_id} expired and was refreshed")
                return TokenCheck(
                    valid=True,
                    message="Token was expired and has been refreshed",
                    refreshed_token=new_token,
                )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise QueryError("Token validation failed", original_error=e) from e
