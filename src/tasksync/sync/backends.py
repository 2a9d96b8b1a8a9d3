"""
Remote stores -- where the task document lives.

One document per derived key, holding the whole task collection.
Every store offers the same contract: whole-document put, get that
tells "not found" (None) apart from "no tasks" ([]), and exists.

JSON blob: generic HTTP document store, UUID-shaped keys.
Firestore: structured per-document database, REST API, hex keys.
Local: a directory of JSON documents. For USB drives, NAS, tests.

Stores never retry. Retry policy belongs to the engine.
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import requests
from pydantic import ValidationError

from ..models import StoredDocument, Task
from ..store import atomic_write_json
from .errors import (
    RemoteBackendError,
    SyncConfigurationError,
    SyncPermissionError,
    TransientSyncError,
)
from .identity import KeyFormat
from .models import SyncBackendConfig, SyncBackendType

logger = logging.getLogger("tasksync.sync.backends")


def _tasks_from_body(body: Any, source: str) -> list[Task]:
    """Parse a stored document body into tasks.

    Accepts ``{"tasks": [...]}`` and the older bare ``[...]`` form.
    A document whose ``tasks`` is not a list reads as an empty collection.
    """
    if isinstance(body, list):
        raw = body
    elif isinstance(body, dict):
        raw = body.get("tasks")
        if not isinstance(raw, list):
            raw = []
    else:
        raise RemoteBackendError(f"{source}: unexpected document body")

    try:
        return [Task.model_validate(item) for item in raw]
    except ValidationError as exc:
        raise RemoteBackendError(f"{source}: malformed task in document: {exc}") from exc


class RemoteStore(ABC):
    """Abstract remote document store."""

    key_format: KeyFormat = KeyFormat.HEX

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable store name."""

    @abstractmethod
    def available(self) -> bool:
        """Whether the store is configured and usable."""

    @abstractmethod
    def put(self, key: str, tasks: list[Task]) -> bool:
        """Overwrite the document at ``key`` with the full collection.

        Creates the document if absent. No partial updates, no
        concurrency check.

        Returns:
            True once the write is acknowledged.
        """

    @abstractmethod
    def get(self, key: str) -> Optional[list[Task]]:
        """Read the collection stored at ``key``.

        Returns:
            The stored tasks, or None when no document exists.
        """

    def exists(self, key: str) -> bool:
        return self.get(key) is not None


class HttpStore(RemoteStore):
    """Shared request/error plumbing for HTTP document stores.

    Args:
        config: Backend configuration.
        session: requests session to use. A new one by default.
    """

    def __init__(
        self,
        config: SyncBackendConfig,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.session = session or requests.Session()
        self.timeout = config.timeout_seconds

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            raise TransientSyncError(f"{self.name}: request timed out") from exc
        except requests.ConnectionError as exc:
            raise TransientSyncError(f"{self.name}: network unreachable: {exc}") from exc
        except requests.RequestException as exc:
            raise RemoteBackendError(f"{self.name}: request failed: {exc}") from exc

    def _check(self, resp: requests.Response, action: str) -> None:
        """Map an HTTP error status onto the sync error taxonomy."""
        status = resp.status_code
        if status < 400:
            return
        detail = f"{self.name} {action}: HTTP {status}"
        if status in (401, 403):
            raise SyncPermissionError(detail)
        if status == 429 or status >= 500:
            raise TransientSyncError(detail)
        raise RemoteBackendError(f"{detail} {resp.text[:200]}")

    @staticmethod
    def _json(resp: requests.Response, source: str) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteBackendError(f"{source}: response is not JSON") from exc


class JsonBlobStore(HttpStore):
    """Generic JSON blob store addressed by ``{base_url}/{key}``.

    The service only accepts ids that look like version-4 UUIDs.
    """

    key_format = KeyFormat.UUID

    @property
    def name(self) -> str:
        return "jsonblob"

    def available(self) -> bool:
        return bool(self.config.base_url)

    def _url(self, key: str) -> str:
        if not self.available():
            raise SyncConfigurationError("jsonblob: no base_url configured")
        return f"{self.config.base_url.rstrip('/')}/{key}"

    def get(self, key: str) -> Optional[list[Task]]:
        resp = self._request("GET", self._url(key), headers={"Accept": "application/json"})
        if resp.status_code == 404:
            return None
        self._check(resp, "get")
        return _tasks_from_body(self._json(resp, self.name), self.name)

    def put(self, key: str, tasks: list[Task]) -> bool:
        url = self._url(key)
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        payload = json.dumps(StoredDocument(tasks=tasks).to_wire())

        resp = self._request("PUT", url, headers=headers, data=payload)
        if resp.status_code in (404, 405):
            # creating a blob under a chosen id needs POST on some deployments
            logger.debug("jsonblob PUT refused (%d), retrying as POST", resp.status_code)
            resp = self._request("POST", url, headers=headers, data=payload)
        self._check(resp, "put")
        logger.info("Pushed %d task(s) to jsonblob", len(tasks))
        return True


class FirestoreStore(HttpStore):
    """Firestore document ``{collection}/{key}`` over the REST API.

    The API key is read from the environment variable named by
    ``config.api_key_env_var`` when the store is built.
    """

    key_format = KeyFormat.HEX

    def __init__(
        self,
        config: SyncBackendConfig,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(config, session)
        self.api_key = (
            os.environ.get(config.api_key_env_var, "")
            if config.api_key_env_var
            else ""
        )

    @property
    def name(self) -> str:
        return "firestore"

    def available(self) -> bool:
        return bool(self.config.project_id)

    def _doc_url(self, key: str) -> str:
        if not self.available():
            raise SyncConfigurationError("firestore: no project_id configured")
        c = self.config
        return (
            f"{c.firestore_url.rstrip('/')}/projects/{c.project_id}"
            f"/databases/{c.database}/documents/{c.collection}/{key}"
        )

    def _params(self) -> dict:
        return {"key": self.api_key} if self.api_key else {}

    def get(self, key: str) -> Optional[list[Task]]:
        resp = self._request("GET", self._doc_url(key), params=self._params())
        if resp.status_code == 404:
            return None
        self._check(resp, "get")
        body = self._json(resp, self.name)
        fields = body.get("fields", {}) if isinstance(body, dict) else {}
        decoded = {name: _decode_value(value) for name, value in fields.items()}
        return _tasks_from_body(decoded, self.name)

    def put(self, key: str, tasks: list[Task]) -> bool:
        doc = StoredDocument(tasks=tasks)
        body = {
            "fields": {
                "tasks": _encode_value([t.to_wire() for t in doc.tasks]),
                "lastUpdated": _encode_value(doc.last_updated),
            }
        }
        # PATCH without an update mask replaces every field and upserts
        resp = self._request("PATCH", self._doc_url(key), params=self._params(), json=body)
        self._check(resp, "put")
        logger.info("Pushed %d task(s) to firestore", len(tasks))
        return True


def _encode_value(value: Any) -> dict:
    """Encode a plain value as a Firestore typed value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": value.isoformat().replace("+00:00", "Z")}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [_encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": {k: _encode_value(v) for k, v in value.items()}}}
    raise TypeError(f"Cannot encode {type(value).__name__} for firestore")


def _decode_value(value: dict) -> Any:
    """Decode a Firestore typed value into a plain value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return value["timestampValue"]
    if "arrayValue" in value:
        return [_decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        fields = value["mapValue"].get("fields", {})
        return {k: _decode_value(v) for k, v in fields.items()}
    raise RemoteBackendError(f"firestore: unsupported value type {sorted(value)}")


class LocalStore(RemoteStore):
    """Directory of ``<key>.json`` documents."""

    def __init__(self, config: SyncBackendConfig, home: Path):
        self.config = config
        self.target = (
            config.local_path.expanduser()
            if config.local_path
            else home / "remote"
        )
        self.target.mkdir(parents=True, exist_ok=True)

    @property
    def name(self) -> str:
        return "local"

    def available(self) -> bool:
        return self.target.is_dir()

    def _path(self, key: str) -> Path:
        return self.target / f"{key}.json"

    def get(self, key: str) -> Optional[list[Task]]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            body = json.loads(path.read_text(encoding="utf-8"))
        except PermissionError as exc:
            raise SyncPermissionError(f"local: cannot read {path}: {exc}") from exc
        except OSError as exc:
            raise RemoteBackendError(f"local: cannot read {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise RemoteBackendError(f"local: {path.name} is not JSON") from exc
        return _tasks_from_body(body, self.name)

    def put(self, key: str, tasks: list[Task]) -> bool:
        try:
            atomic_write_json(self._path(key), StoredDocument(tasks=tasks).to_wire())
        except PermissionError as exc:
            raise SyncPermissionError(f"local: cannot write {self.target}: {exc}") from exc
        except OSError as exc:
            raise RemoteBackendError(f"local: write failed: {exc}") from exc
        logger.info("Pushed %d task(s) to local store: %s", len(tasks), self.target)
        return True

    def exists(self, key: str) -> bool:
        return self._path(key).exists()


def create_backend(
    config: SyncBackendConfig,
    home: Path,
    session: Optional[requests.Session] = None,
) -> RemoteStore:
    """Factory function to build the configured remote store.

    Args:
        config: Backend configuration.
        home: App home directory (default root for the local store).
        session: Optional requests session for HTTP stores.

    Returns:
        Instantiated RemoteStore.

    Raises:
        ValueError: If the backend type is not supported.
    """
    if config.backend_type == SyncBackendType.JSONBLOB:
        return JsonBlobStore(config, session)
    if config.backend_type == SyncBackendType.FIRESTORE:
        return FirestoreStore(config, session)
    if config.backend_type == SyncBackendType.LOCAL:
        return LocalStore(config, home)
    raise ValueError(f"Unsupported backend: {config.backend_type}")
