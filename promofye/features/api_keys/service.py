"""
Provider API key management (admin back office).

Keys are stored per provider and the first active one is used for
generation. Lookups are cached per provider; any write clears the cache.
Falls back to GEMINI_API_KEY when no active key is stored.
"""
from typing import Dict, List, Optional
from uuid import uuid4
import logging

from sqlalchemy import select, insert, update
from sqlalchemy.exc import SQLAlchemyError

from promofye.core.clock import ensure_utc, utcnow
from promofye.core.config import settings
from promofye.core.database import get_db_session, api_keys
from promofye.core.errors import ApiKeyConfigError, NotFoundError, ValidationError
from promofye.core.logging import log_event
from promofye.models.api_key import ApiKey

logger = logging.getLogger("promofye")

DEFAULT_PROVIDER = "google_gemini"
MIN_KEY_LENGTH = 20

_key_cache: Dict[str, Optional[str]] = {}


def clear_api_key_cache() -> None:
    _key_cache.clear()


def _row_to_api_key(row) -> ApiKey:
    return ApiKey(
        id=row.id,
        name=row.name,
        provider=row.provider,
        api_key=row.api_key,
        is_active=bool(row.is_active),
        created_by=row.created_by,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


def validate_key_format(api_key: Optional[str]) -> str:
    key = (api_key or "").strip()
    if len(key) < MIN_KEY_LENGTH:
        raise ApiKeyConfigError(
            "Invalid Google Gemini API key format. Please verify the API key in the Admin Dashboard."
        )
    return key


def add_api_key(name: str, provider: str, api_key: str, created_by: Optional[str] = None) -> ApiKey:
    """
    Store a new active provider key.

    Raises:
        ValidationError: name, provider or api_key missing
    """
    name = (name or "").strip()
    provider = (provider or "").strip()
    api_key = (api_key or "").strip()
    if not name or not provider or not api_key:
        raise ValidationError("Name, provider and API key are required")

    now = utcnow()
    key_id = str(uuid4())
    with get_db_session() as session:
        session.execute(
            insert(api_keys).values(
                id=key_id,
                name=name,
                provider=provider,
                api_key=api_key,
                is_active=True,
                created_by=created_by,
                created_at=now,
                updated_at=now,
            )
        )

    clear_api_key_cache()
    log_event(
        "info",
        "api_key.added",
        user_id=created_by,
        event_type="api_key",
        extra={"provider": provider, "key_name": name},
    )
    return get_api_key(key_id)


def get_api_key(key_id: str) -> ApiKey:
    with get_db_session() as session:
        row = session.execute(select(api_keys).where(api_keys.c.id == key_id)).first()
    if not row:
        raise NotFoundError(f"API key {key_id} not found")
    return _row_to_api_key(row)


def list_api_keys() -> List[ApiKey]:
    with get_db_session() as session:
        rows = session.execute(select(api_keys).order_by(api_keys.c.created_at.desc())).all()
        return [_row_to_api_key(row) for row in rows]


def set_api_key_active(key_id: str, is_active: bool) -> ApiKey:
    with get_db_session() as session:
        result = session.execute(
            update(api_keys)
            .where(api_keys.c.id == key_id)
            .values(is_active=is_active, updated_at=utcnow())
        )
        if result.rowcount == 0:
            raise NotFoundError(f"API key {key_id} not found")

    clear_api_key_cache()
    log_event(
        "info",
        "api_key.toggled",
        event_type="api_key",
        extra={"key_id": key_id, "is_active": is_active},
    )
    return get_api_key(key_id)


def toggle_api_key(key_id: str) -> ApiKey:
    current = get_api_key(key_id)
    return set_api_key_active(key_id, not current.is_active)


def get_active_api_key(provider: str = DEFAULT_PROVIDER) -> Optional[str]:
    """First active stored key for the provider, else GEMINI_API_KEY, else None."""
    if provider in _key_cache:
        return _key_cache[provider]

    try:
        with get_db_session() as session:
            row = session.execute(
                select(api_keys.c.api_key)
                .where(api_keys.c.provider == provider)
                .where(api_keys.c.is_active.is_(True))
                .order_by(api_keys.c.created_at.asc())
            ).first()
    except SQLAlchemyError as e:
        # not cached, so the next call retries the table
        log_event(
            "error",
            "api_key.lookup_failed",
            event_type="api_key",
            error_code=type(e).__name__,
            extra={"provider": provider, "error": str(e)},
        )
        if provider == DEFAULT_PROVIDER:
            return settings.GEMINI_API_KEY or None
        return None

    key = row.api_key if row else None
    if not key and provider == DEFAULT_PROVIDER:
        key = settings.GEMINI_API_KEY or None

    _key_cache[provider] = key
    return key
