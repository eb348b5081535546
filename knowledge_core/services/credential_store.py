"""
Runtime credential store for generation-service credentials.

Credentials set at runtime override the .env-based defaults from
config.Settings. Stored in-memory only; they do not persist across restarts.
"""

import threading
from typing import Optional

_lock = threading.Lock()
_store: dict[str, str] = {}


def set_credential(key: str, value: str) -> None:
    with _lock:
        _store[key] = value


def get_credential(key: str, default: str = "") -> str:
    with _lock:
        return _store.get(key, default)


def clear_credentials(prefix: str = "") -> None:
    with _lock:
        if prefix:
            for k in [k for k in _store if k.startswith(prefix)]:
                del _store[k]
        else:
            _store.clear()


def resolve_credential(key: str, override: Optional[str], fallback: str = "") -> str:
    """Per-call override, then runtime store, then the configured fallback."""
    if override:
        return override
    return get_credential(key) or fallback
