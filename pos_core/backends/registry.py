# =============================================================================
# pos_core/backends/registry.py
# Builds backend adapters from storage settings
# =============================================================================

from __future__ import annotations
from typing import TYPE_CHECKING, Dict, Optional
import logging

import requests

from pos_core.backends.base import StorageBackend
from pos_core.backends.firebase_backend import FirebaseBackend
from pos_core.backends.local_backend import LocalBackend
from pos_core.backends.neon_backend import NeonBackend
from pos_core.backends.supabase_backend import SupabaseBackend
from pos_core.models import BackendKind

if TYPE_CHECKING:
    from pos_core.config.settings import StorageSettings
    from pos_core.offline.local_database import LocalStore

logger = logging.getLogger(__name__)

# Registry of available adapters
BACKEND_CLASSES = {
    BackendKind.SUPABASE: SupabaseBackend,
    BackendKind.FIREBASE: FirebaseBackend,
    BackendKind.NEON: NeonBackend,
    BackendKind.LOCAL: LocalBackend,
}


def build_backends(
    settings: StorageSettings,
    local_store: LocalStore,
    session: Optional[requests.Session] = None,
) -> Dict[BackendKind, StorageBackend]:
    """
    Create one adapter per configured backend.

    Remote backends without credentials are left out, so the probe reports
    them as "not configured". The local backend is always present.

    Usage:
        backends = build_backends(load_settings(), LocalStore())
        backends[BackendKind.LOCAL].list_products()
    """
    backends: Dict[BackendKind, StorageBackend] = {}

    if settings.supabase_configured:
        backends[BackendKind.SUPABASE] = SupabaseBackend(url=settings.supabase_url, key=settings.supabase_key)

    if settings.firebase_configured:
        backends[BackendKind.FIREBASE] = FirebaseBackend(
            project_id=settings.firebase_project_id,
            api_key=settings.firebase_api_key,
            timeout=settings.request_timeout_s,
            session=session,
        )

    if settings.neon_configured:
        backends[BackendKind.NEON] = NeonBackend(
            settings.neon_api_url,
            timeout=settings.request_timeout_s,
            session=session,
        )

    backends[BackendKind.LOCAL] = LocalBackend(local_store)

    configured = [kind.value for kind in backends]
    logger.info(f"Storage backends available: {', '.join(configured)}")
    return backends
