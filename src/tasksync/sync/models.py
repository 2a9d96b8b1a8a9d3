"""
Sync data models -- backend configuration and engine policy.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

JSONBLOB_URL = "https://jsonblob.com/api/jsonBlob"
FIRESTORE_URL = "https://firestore.googleapis.com/v1"


class SyncBackendType(str, Enum):
    """Supported remote document stores."""

    JSONBLOB = "jsonblob"
    FIRESTORE = "firestore"
    LOCAL = "local"


class RegistrationResult(str, Enum):
    """Outcome of claiming a fresh sync code."""

    CREATED = "created"
    EXISTS = "exists"
    FAILED = "failed"


class SyncBackendConfig(BaseModel):
    """Configuration for the remote store."""

    backend_type: SyncBackendType = SyncBackendType.JSONBLOB
    timeout_seconds: float = 15.0

    # JSON blob store
    base_url: str = JSONBLOB_URL

    # Firestore
    project_id: Optional[str] = None
    database: str = "(default)"
    collection: str = "user_tasks"
    api_key_env_var: Optional[str] = "TASKSYNC_FIRESTORE_API_KEY"
    firestore_url: str = FIRESTORE_URL

    # Local filesystem
    local_path: Optional[Path] = None


class SyncConfig(BaseModel):
    """Sync engine policy.

    ``push_delay_seconds`` of 0 pushes on every mutation; anything higher
    batches mutations that arrive within the delay into one push.
    """

    backend: SyncBackendConfig = Field(default_factory=SyncBackendConfig)
    poll_interval_seconds: float = 10.0
    push_delay_seconds: float = 0.0
    auto_pull: bool = True
