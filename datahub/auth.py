import hashlib
import logging
import secrets
import uuid
from typing import Annotated, Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from datahub import config
from datahub.config import API_KEY_HEADER
from datahub.db.database import get_session
from datahub.models import ApiKey
from datahub.models.dataset import utcnow

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "dh_"

api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def generate_api_key() -> str:
    """``dh_`` followed by 32 random bytes in hex."""
    return f"{API_KEY_PREFIX}{secrets.token_hex(32)}"


def hash_api_key(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()


def issue_api_key(session: Session, name: str) -> tuple[ApiKey, str]:
    """Store a new key and return it with its plaintext, which is never persisted."""
    key = generate_api_key()
    api_key = ApiKey(id=str(uuid.uuid4()), key_hash=hash_api_key(key), name=name)
    session.add(api_key)
    session.flush()
    return api_key, key


def validate_api_key(session: Session, key: Optional[str]) -> Optional[ApiKey]:
    if not key:
        return None

    api_key = session.scalar(
        select(ApiKey).where(
            ApiKey.key_hash == hash_api_key(key), ApiKey.status == "active"
        )
    )
    if api_key is None:
        return None

    # last_used_at is informational; a failed touch must not reject the caller
    try:
        session.execute(
            update(ApiKey).where(ApiKey.id == api_key.id).values(last_used_at=utcnow())
        )
        session.commit()
    except Exception:
        session.rollback()
        logger.exception(f"Failed to update last_used_at for API key {api_key.id}")

    return api_key


def auth_disabled() -> bool:
    return config.DISABLE_API_KEY_AUTH and config.ENVIRONMENT != "production"


def require_api_key(
    key: Annotated[Optional[str], Depends(api_key_header)],
    session: Annotated[Session, Depends(get_session)],
) -> Optional[ApiKey]:
    if auth_disabled():
        return None

    if not key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing API key. Please provide a valid API key in the {API_KEY_HEADER} header.",
        )

    api_key = validate_api_key(session, key)
    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or inactive API key.",
        )
    return api_key
