# =============================================================================
# pos_core/backends/__init__.py
# Storage backend adapters
# =============================================================================

from pos_core.backends.base import StorageBackend, HttpBackend
from pos_core.backends.supabase_backend import SupabaseBackend
from pos_core.backends.firebase_backend import FirebaseBackend
from pos_core.backends.neon_backend import NeonBackend
from pos_core.backends.local_backend import LocalBackend
from pos_core.backends.registry import BACKEND_CLASSES, build_backends

__all__ = [
    "StorageBackend",
    "HttpBackend",
    "SupabaseBackend",
    "FirebaseBackend",
    "NeonBackend",
    "LocalBackend",
    "BACKEND_CLASSES",
    "build_backends",
]
