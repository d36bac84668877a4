# =============================================================================
# pos_core/config/settings.py
# Storage configuration loaded from Streamlit secrets or the environment
# =============================================================================
"""
Expected secrets in .streamlit/secrets.toml:

    [supabase]
    url = "https://your-project.supabase.co"
    key = "your-anon-key"

    [firebase]
    project_id = "charnoks-pos"
    api_key = "your-web-api-key"

    [neon]
    api_url = "https://pos.example.com"

    [storage]
    priority = ["supabase", "firebase", "neon", "local"]
    probe_timeout_ms = 5000
    firebase_probe_timeout_ms = 3000

Without secrets, the same values are read from environment variables
(a .env file is honoured): SUPABASE_URL, SUPABASE_KEY, FIREBASE_PROJECT_ID,
FIREBASE_API_KEY, NEON_API_URL, POS_BACKEND_PRIORITY, POS_PROBE_TIMEOUT_MS,
POS_FIREBASE_PROBE_TIMEOUT_MS, POS_LOCAL_DB_PATH, POS_MONITOR_INTERVAL_ONLINE,
POS_MONITOR_INTERVAL_OFFLINE.
"""

from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple
import logging

import streamlit as st
from dotenv import load_dotenv

from pos_core.errors.exceptions import ConfigurationError
from pos_core.models.enums import BackendKind, DEFAULT_PRIORITY

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_DB_PATH = Path(__file__).parent.parent.parent / "local_data" / "charnoks_pos.db"

# Firestore answers faster or not at all; keep its probe short
DEFAULT_BACKEND_TIMEOUTS_MS = {BackendKind.FIREBASE: 3000}


@dataclass
class StorageSettings:
    """Everything the storage layer needs to pick and reach a backend."""
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    firebase_project_id: Optional[str] = None
    firebase_api_key: Optional[str] = None
    neon_api_url: Optional[str] = None
    priority: Tuple[BackendKind, ...] = DEFAULT_PRIORITY
    probe_timeout_ms: int = 5000
    backend_timeouts_ms: Dict[BackendKind, int] = field(
        default_factory=lambda: dict(DEFAULT_BACKEND_TIMEOUTS_MS)
    )
    local_db_path: Path = DEFAULT_LOCAL_DB_PATH
    monitor_interval_online: int = 30
    monitor_interval_offline: int = 10
    request_timeout_s: float = 10.0

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def firebase_configured(self) -> bool:
        return bool(self.firebase_project_id)

    @property
    def neon_configured(self) -> bool:
        return bool(self.neon_api_url)

    def timeout_for(self, backend: BackendKind) -> int:
        """Probe timeout for a backend, falling back to the global default."""
        return self.backend_timeouts_ms.get(backend, self.probe_timeout_ms)


def parse_priority(value: Any) -> Tuple[BackendKind, ...]:
    """Parse "supabase,neon" or ["supabase", "neon"] into BackendKinds."""
    if isinstance(value, str):
        parts = [p for p in (s.strip() for s in value.split(",")) if p]
    else:
        parts = list(value or [])

    if not parts:
        raise ConfigurationError("Backend priority is empty", config_key="priority")

    order = []
    for part in parts:
        try:
            kind = BackendKind.parse(part)
        except ValueError:
            raise ConfigurationError(
                f"Unknown backend in priority: {part}",
                config_key="priority",
                expected_type=", ".join(k.value for k in BackendKind),
            )
        if kind not in order:
            order.append(kind)
    return tuple(order)


def _positive_int(value: Any, key: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer", config_key=key, expected_type="int")
    if number <= 0:
        raise ConfigurationError(f"{key} must be positive", config_key=key, expected_type="int > 0")
    return number


def _read_secrets() -> Dict[str, Dict[str, Any]]:
    """Copy the relevant Streamlit secret sections, or {} when none exist."""
    sections = {}
    try:
        for name in ("supabase", "firebase", "neon", "storage"):
            if name in st.secrets:
                sections[name] = dict(st.secrets[name])
    except Exception as e:
        # No secrets.toml outside a configured Streamlit deployment
        logger.debug(f"Streamlit secrets not available: {e}")
        return {}
    return sections


def load_settings(
    overrides: Optional[Mapping[str, Any]] = None,
    use_secrets: bool = True,
    environ: Optional[Mapping[str, str]] = None,
) -> StorageSettings:
    """
    Build StorageSettings from overrides, Streamlit secrets and the environment.

    Args:
        overrides: Field values that win over every other source
        use_secrets: Whether to consult st.secrets
        environ: Environment mapping (default: os.environ after load_dotenv)

    Returns:
        Validated StorageSettings
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    secrets = _read_secrets() if use_secrets else {}
    supabase = secrets.get("supabase", {})
    firebase = secrets.get("firebase", {})
    neon = secrets.get("neon", {})
    storage = secrets.get("storage", {})

    values: Dict[str, Any] = {
        "supabase_url": supabase.get("url") or environ.get("SUPABASE_URL"),
        "supabase_key": supabase.get("key") or environ.get("SUPABASE_KEY"),
        "firebase_project_id": firebase.get("project_id") or environ.get("FIREBASE_PROJECT_ID"),
        "firebase_api_key": firebase.get("api_key") or environ.get("FIREBASE_API_KEY"),
        "neon_api_url": neon.get("api_url") or environ.get("NEON_API_URL"),
    }

    priority = storage.get("priority") or environ.get("POS_BACKEND_PRIORITY")
    if priority:
        values["priority"] = priority

    timeout = storage.get("probe_timeout_ms") or environ.get("POS_PROBE_TIMEOUT_MS")
    if timeout:
        values["probe_timeout_ms"] = timeout

    db_path = storage.get("local_db_path") or environ.get("POS_LOCAL_DB_PATH")
    if db_path:
        values["local_db_path"] = db_path

    for key, env_key in (
        ("firebase_probe_timeout_ms", "POS_FIREBASE_PROBE_TIMEOUT_MS"),
        ("monitor_interval_online", "POS_MONITOR_INTERVAL_ONLINE"),
        ("monitor_interval_offline", "POS_MONITOR_INTERVAL_OFFLINE"),
    ):
        raw = storage.get(key) or environ.get(env_key)
        if raw:
            values[key] = raw

    values.update(overrides or {})

    if "priority" in values:
        values["priority"] = parse_priority(values["priority"])
    for key in ("probe_timeout_ms", "firebase_probe_timeout_ms", "monitor_interval_online", "monitor_interval_offline"):
        if key in values:
            values[key] = _positive_int(values[key], key)

    # Per-backend probe timeouts; only Firebase has a setting of its own
    firebase_timeout = values.pop("firebase_probe_timeout_ms", None)
    if firebase_timeout is not None:
        timeouts = dict(values.get("backend_timeouts_ms") or DEFAULT_BACKEND_TIMEOUTS_MS)
        timeouts[BackendKind.FIREBASE] = firebase_timeout
        values["backend_timeouts_ms"] = timeouts

    if "local_db_path" in values:
        values["local_db_path"] = Path(values["local_db_path"])

    settings = StorageSettings(**values)
    logger.debug(
        "Storage settings loaded: priority=%s supabase=%s firebase=%s neon=%s",
        [k.value for k in settings.priority],
        settings.supabase_configured,
        settings.firebase_configured,
        settings.neon_configured,
    )
    return settings
