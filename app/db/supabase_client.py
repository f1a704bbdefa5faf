"""
Supabase connection for the trade and account stores.

Supabase is the storage backend in production (Render, ENVIRONMENT=production)
or when FORCE_SUPABASE=true; everywhere else the local SQLAlchemy database
is used. The stores write with the service role key when one is configured
so imports are not blocked by row-level security on the ``trades`` table.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from supabase import Client, create_client

from app.config import get_env

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SupabaseCredentials:
    url: str
    anon_key: str
    service_key: Optional[str] = None

    @property
    def storage_key(self) -> str:
        return self.service_key or self.anon_key

    @property
    def role(self) -> str:
        return "service" if self.service_key else "anon"


def _flag(name: str) -> bool:
    return get_env(name).strip().lower() == "true"


def supabase_enabled() -> bool:
    """Deployment flags that select Supabase, regardless of credentials."""
    return _flag("RENDER") or _flag("FORCE_SUPABASE") or get_env("ENVIRONMENT").strip().lower() == "production"


def load_credentials() -> SupabaseCredentials:
    """
    Read Supabase credentials from the environment.

    Raises:
        ValueError: SUPABASE_URL or SUPABASE_ANON_KEY is missing
    """
    url = get_env("SUPABASE_URL").strip()
    anon_key = get_env("SUPABASE_ANON_KEY").strip()
    missing = [name for name, value in (("SUPABASE_URL", url), ("SUPABASE_ANON_KEY", anon_key)) if not value]
    if missing:
        raise ValueError(f"Missing Supabase environment variables: {', '.join(missing)}")
    return SupabaseCredentials(
        url=url,
        anon_key=anon_key,
        service_key=get_env("SUPABASE_SERVICE_KEY").strip() or None,
    )


def is_supabase_configured() -> bool:
    """True when Supabase is enabled for this deployment and its credentials are set."""
    if not supabase_enabled():
        return False
    try:
        load_credentials()
    except ValueError:
        return False
    return True


@lru_cache(maxsize=2)
def _create(url: str, key: str) -> Client:
    return create_client(url, key)


def get_storage_client() -> Client:
    """Cached client for the stores: service role when available, anon otherwise."""
    credentials = load_credentials()
    logger.info(f"Using Supabase {credentials.role} client for {credentials.url[:30]}...")
    return _create(credentials.url, credentials.storage_key)
