"""Supabase access for partner branches and courier delivery zones."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from supabase import Client, create_client

from ..config import settings


@lru_cache(maxsize=1)
def get_supabase_client() -> Optional[Client]:
    """Process-wide client, or None when GEOASSIGN_SUPABASE_URL / _KEY are unset.

    Creating the client does not contact the server; connection problems show
    up on the first query.
    """
    url, key = settings.supabase_url, settings.supabase_key
    if not url or not key:
        logging.warning("Reference data unavailable: Supabase URL or key not configured")
        return None

    try:
        return create_client(url, key)
    except Exception as e:
        logging.error(f"Could not create Supabase client for {url}: {e}")
        return None
