# temporal_facts/config.py

from __future__ import annotations

import os
from typing import Any

from .crypto.aesgcm import DEFAULT_KDF_ITERATIONS
from .storage.sqlite_store import DEFAULT_DB_PATH

DB_PATH_ENV = "TEMPORAL_FACTS_DB"

DEFAULT_CONFIG: dict[str, Any] = {
    "sqlite_path": DEFAULT_DB_PATH,
    "kdf_iterations": DEFAULT_KDF_ITERATIONS,
    "default_subject": "user",
    "context_limit": 10,
    "min_candidate_confidence": 0.0,
    "extracted_scope": "session",
    "manual_scope": "account",
}


def resolve_config(config: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Defaults < TEMPORAL_FACTS_DB env var < explicit config keys.
    """
    resolved = dict(DEFAULT_CONFIG)
    env_path = os.environ.get(DB_PATH_ENV)
    if env_path:
        resolved["sqlite_path"] = env_path
    resolved.update({k: v for k, v in (config or {}).items() if v is not None})

    resolved["kdf_iterations"] = int(resolved["kdf_iterations"])
    resolved["context_limit"] = int(resolved["context_limit"])
    resolved["min_candidate_confidence"] = float(resolved["min_candidate_confidence"])
    return resolved
