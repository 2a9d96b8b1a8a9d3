"""
Sync Engine -- keeps the local task list and the remote document in step.

    mutation  ->  local cache (always, first)  ->  put(key, all tasks)
    poller    ->  get(key)  ->  differs from local?  ->  replace local

Conflict policy is deliberately blunt: the remote document is a single
last-writer-wins value, and a pull that sees a different remote value
replaces the local collection wholesale. Devices converge; concurrent
edits made between polls on another device can be lost.

Remote operations against the active key never overlap. Pushes wait
their turn, pulls skip when anything is in flight. Results that come
back after the key changed (disconnect, reconnect) or after a newer
local mutation are discarded.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ..models import SyncStatus, Task
from ..store import LocalCache
from .backends import RemoteStore
from .digest import DigestProvider
from .errors import SyncConfigurationError, SyncError, SyncValidationError
from .identity import MIN_SYNC_CODE_LENGTH, derive_key, is_valid_sync_code
from .models import RegistrationResult, SyncConfig

logger = logging.getLogger("tasksync.sync.engine")

StatusCallback = Callable[[SyncStatus], None]

NOT_CONFIGURED = "Remote backend not configured; working from the local cache"


class Poller:
    """Recurring background action that can be stopped.

    Args:
        interval: Seconds between runs. The first run happens after one interval.
        action: Callable invoked on every tick.
        name: Thread name.
    """

    def __init__(self, interval: float, action: Callable[[], object], name: str = "tasksync-poll"):
        self.interval = interval
        self._action = action
        self._name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the loop to end and wait briefly for it."""
        self._stop_event.set()
        thread = self._thread
        if thread and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def _run(self) -> None:
        while not self._stop_event.wait(timeout=self.interval):
            try:
                self._action()
            except Exception as exc:
                logger.error("Poll error: %s", exc)


class SyncEngine:
    """Orchestrates local cache writes, pushes, pulls, and sync status.

    Args:
        cache: Local task/profile storage.
        backend: Remote store, or None for local-only use.
        config: Polling and push policy.
        digest: SHA-256 implementer for key derivation.
        on_status: Called with the new status on every transition.
    """

    def __init__(
        self,
        cache: LocalCache,
        backend: Optional[RemoteStore] = None,
        config: Optional[SyncConfig] = None,
        digest: Optional[DigestProvider] = None,
        on_status: Optional[StatusCallback] = None,
    ):
        self.cache = cache
        self.backend = backend
        self.config = config or SyncConfig()
        self.digest = digest
        self._on_status = on_status

        self._state_lock = threading.RLock()
        self._remote_lock = threading.Lock()
        self._generation = 0
        self._poller: Optional[Poller] = None
        self._pending: Optional[threading.Timer] = None
        self._pending_tasks: Optional[list[Task]] = None
        self._pending_generation = 0

        self.last_error: Optional[str] = None
        self.last_error_kind: Optional[str] = None

        self._key: Optional[str] = None
        self._status = SyncStatus.OFFLINE
        profile = cache.load_profile()
        if is_valid_sync_code(profile.sync_code) and self._remote_ready():
            self._key = self._derive(profile.sync_code)
            self._status = SyncStatus.SYNCED

    # -- state ---------------------------------------------------------

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def key(self) -> Optional[str]:
        """Derived key of the active sync code, None when local-only."""
        return self._key

    @property
    def connected(self) -> bool:
        return self._key is not None

    @property
    def polling(self) -> bool:
        return self._poller is not None and self._poller.running

    def load_tasks(self) -> list[Task]:
        return self.cache.load_tasks()

    def _remote_ready(self) -> bool:
        return self.backend is not None and self.backend.available()

    def _derive(self, passphrase: str) -> str:
        return derive_key(passphrase, self.backend.key_format, self.digest)

    def _set_status(self, status: SyncStatus, key: Optional[str] = None) -> bool:
        """Move to ``status``.

        With ``key`` the change only applies while that key is still the
        active one, so results of a replaced connection are ignored.

        Returns:
            False if the update was dropped as stale.
        """
        with self._state_lock:
            if key is not None and self._key != key:
                return False
            changed = status != self._status
            self._status = status
            if status == SyncStatus.SYNCED:
                self.last_error = None
                self.last_error_kind = None
        if changed:
            logger.debug("Sync status -> %s", status.value)
            if self._on_status:
                self._on_status(status)
        return True

    def _fail(self, exc: SyncError, key: Optional[str] = None) -> None:
        """Record a remote failure as status + message."""
        with self._state_lock:
            if key is not None and self._key != key:
                logger.debug("Ignoring failure for an inactive key: %s", exc)
                return
            self.last_error = str(exc)
            self.last_error_kind = exc.kind
        if isinstance(exc, SyncConfigurationError):
            logger.warning("Sync unavailable: %s", exc)
            self._set_status(SyncStatus.OFFLINE, key)
            return
        if exc.kind == "permission":
            logger.error("Sync rejected by backend: %s", exc)
        else:
            logger.warning("Sync failed: %s", exc)
        self._set_status(SyncStatus.ERROR, key)

    def _not_configured(self) -> None:
        with self._state_lock:
            self._key = None
            self.last_error = NOT_CONFIGURED
            self.last_error_kind = "configuration"
        self._set_status(SyncStatus.OFFLINE)

    def _activate(self, passphrase: str, key: str) -> None:
        """Persist the sync code and make ``key`` the active key."""
        profile = self.cache.load_profile()
        profile.sync_code = passphrase
        self.cache.save_profile(profile)
        with self._state_lock:
            self._key = key
            self._generation += 1

    @staticmethod
    def _validate(passphrase: str) -> None:
        if not is_valid_sync_code(passphrase):
            raise SyncValidationError(
                f"Invalid sync code: use at least {MIN_SYNC_CODE_LENGTH} characters"
            )

    # -- operations ----------------------------------------------------

    def connect(self, passphrase: str) -> list[Task]:
        """Start syncing under ``passphrase``.

        If a remote document exists it becomes the local truth, even over
        unsynced local tasks. Otherwise non-empty local tasks seed it; with
        nothing local the remote stays absent.

        Args:
            passphrase: The sync code.

        Returns:
            The local task list after connecting.

        Raises:
            SyncValidationError: If the sync code is too short.
        """
        self._validate(passphrase)
        self.stop_polling()
        self._cancel_pending()

        if not self._remote_ready():
            profile = self.cache.load_profile()
            profile.sync_code = passphrase
            self.cache.save_profile(profile)
            self._not_configured()
            return self.cache.load_tasks()

        key = self._derive(passphrase)
        self._activate(passphrase, key)
        self._set_status(SyncStatus.SYNCING, key)

        result = self.cache.load_tasks()
        with self._remote_lock:
            try:
                remote = self.backend.get(key)
                if remote is not None:
                    with self._state_lock:
                        if self._key == key:
                            self.cache.save_tasks(remote)
                            result = remote
                    logger.info("Adopted %d remote task(s)", len(remote))
                elif result:
                    self.backend.put(key, result)
                    logger.info("Seeded remote document with %d task(s)", len(result))
            except SyncError as exc:
                self._fail(exc, key)
            else:
                self._set_status(SyncStatus.SYNCED, key)

        if self.config.auto_pull and self.last_error_kind != "permission":
            self.start_polling()
        return result

    def register(self, passphrase: str) -> RegistrationResult:
        """Claim a fresh sync code, refusing to overwrite an existing document.

        Args:
            passphrase: The new sync code.

        Returns:
            CREATED when the local tasks now seed a new document, EXISTS
            when the code is already in use, FAILED on a remote error.

        Raises:
            SyncValidationError: If the sync code is too short.
        """
        self._validate(passphrase)
        if not self._remote_ready():
            self._not_configured()
            return RegistrationResult.FAILED

        key = self._derive(passphrase)
        tasks = self.cache.load_tasks()
        with self._remote_lock:
            try:
                if self.backend.exists(key):
                    logger.info("Sync code already registered")
                    return RegistrationResult.EXISTS
                self.backend.put(key, tasks)
            except SyncError as exc:
                self._fail(exc)
                return RegistrationResult.FAILED

        self.stop_polling()
        self._cancel_pending()
        self._activate(passphrase, key)
        self._set_status(SyncStatus.SYNCED)
        if self.config.auto_pull:
            self.start_polling()
        return RegistrationResult.CREATED

    def push(self, tasks: list[Task]) -> bool:
        """Persist ``tasks`` locally, then send them to the remote document.

        The local write always happens first and never depends on the
        network. With a push delay the remote write is batched. A push
        after a permission failure lifts the polling pause.

        Args:
            tasks: The complete task collection.

        Returns:
            True if the remote write succeeded (or was scheduled); False
            when local-only or on failure.
        """
        with self._state_lock:
            self.cache.save_tasks(tasks)
            self._generation += 1
            generation = self._generation
            key = self._key
            resume = key is not None and self.last_error_kind == "permission"
            if resume:
                self.last_error_kind = None

        if key is None:
            return False

        if self.config.push_delay_seconds > 0:
            self._schedule(tasks, key, generation)
            ok = True
        else:
            ok = self._push_now(tasks, key, generation)

        if ok and resume and self.config.auto_pull and not self.polling:
            self.start_polling()
        return ok

    def _push_now(self, tasks: list[Task], key: str, generation: int) -> bool:
        with self._remote_lock:
            with self._state_lock:
                if self._key != key:
                    logger.debug("Dropping push for an inactive key")
                    return False
                if self._generation != generation:
                    # a newer push holds the full list and goes out after us
                    logger.debug("Dropping push superseded by a newer local write")
                    return True
            if not self._set_status(SyncStatus.SYNCING, key):
                return False
            try:
                ok = self.backend.put(key, tasks)
            except SyncError as exc:
                self._fail(exc, key)
                return False
            if not self._set_status(SyncStatus.SYNCED if ok else SyncStatus.ERROR, key):
                return False
        return ok

    def _schedule(self, tasks: list[Task], key: str, generation: int) -> None:
        with self._state_lock:
            if self._pending:
                self._pending.cancel()
            self._pending_tasks = tasks
            self._pending_generation = generation
            timer = threading.Timer(
                self.config.push_delay_seconds, self._flush_pending, args=(key,)
            )
            timer.daemon = True
            self._pending = timer
        timer.start()

    def _flush_pending(self, key: Optional[str] = None) -> bool:
        with self._state_lock:
            tasks = self._pending_tasks
            generation = self._pending_generation
            self._pending = None
            self._pending_tasks = None
            key = key or self._key
        if tasks is None or key is None:
            return False
        return self._push_now(tasks, key, generation)

    def _cancel_pending(self) -> None:
        with self._state_lock:
            if self._pending:
                self._pending.cancel()
            self._pending = None
            self._pending_tasks = None

    def flush(self) -> bool:
        """Send a batched push now instead of waiting for its timer.

        Returns:
            The push result, or False if nothing was pending.
        """
        with self._state_lock:
            if self._pending:
                self._pending.cancel()
        return self._flush_pending()

    def pull(self, force: bool = False) -> Optional[list[Task]]:
        """Fetch the remote collection and adopt it if it differs.

        Skipped while another remote operation or a batched push is
        pending, and while the backend is refusing access unless forced.

        Args:
            force: Pull even after a permission failure.

        Returns:
            The new local tasks if the remote value replaced them, else None.
        """
        with self._state_lock:
            key = self._key
            generation = self._generation
            pending = self._pending is not None
        if key is None or not self._remote_ready():
            return None
        if pending:
            logger.debug("Pull skipped: push pending")
            return None
        if self.last_error_kind == "permission" and not force:
            return None
        if not self._remote_lock.acquire(blocking=False):
            logger.debug("Pull skipped: remote operation in flight")
            return None

        try:
            remote = self.backend.get(key)
        except SyncError as exc:
            self._fail(exc, key)
            return None
        finally:
            self._remote_lock.release()

        with self._state_lock:
            if self._key != key or self._generation != generation:
                logger.debug("Discarding stale pull result")
                return None
            changed = remote is not None and remote != self.cache.load_tasks()
            if changed:
                self.cache.save_tasks(remote)
            if self._key != key:
                return None
            recovering = self._status == SyncStatus.ERROR

        if (recovering or changed) and not self._set_status(SyncStatus.SYNCED, key):
            return None
        if changed:
            logger.info("Pulled %d task(s) from %s", len(remote), self.backend.name)
            return remote
        return None

    def disconnect(self) -> None:
        """Stop syncing. The remote document is left as it is."""
        self.stop_polling()
        self._cancel_pending()
        profile = self.cache.load_profile()
        profile.sync_code = ""
        self.cache.save_profile(profile)
        with self._state_lock:
            self._key = None
            self._generation += 1
            self.last_error = None
            self.last_error_kind = None
        self._set_status(SyncStatus.OFFLINE)
        logger.info("Disconnected; local-only mode")

    # -- polling -------------------------------------------------------

    def start_polling(self) -> bool:
        """Start the pull loop for the active key, replacing any previous loop.

        Returns:
            False when there is no active key.
        """
        with self._state_lock:
            if self._key is None:
                return False
            previous = self._poller
            self._poller = Poller(self.config.poll_interval_seconds, self.pull)
            self._poller.start()
        if previous:
            previous.stop(timeout=0)
        logger.debug("Polling every %ss", self.config.poll_interval_seconds)
        return True

    def stop_polling(self) -> None:
        with self._state_lock:
            poller = self._poller
            self._poller = None
        if poller:
            poller.stop()

    def close(self) -> None:
        """Send any batched push and stop polling."""
        self.flush()
        self.stop_polling()

    def report(self) -> dict:
        """Serializable snapshot for status displays."""
        return {
            "status": self._status.value,
            "backend": self.backend.name if self.backend else None,
            "available": self._remote_ready(),
            "key": self._key[:8] + "..." if self._key else None,
            "polling": self.polling,
            "poll_interval_seconds": self.config.poll_interval_seconds,
            "push_delay_seconds": self.config.push_delay_seconds,
            "last_error": self.last_error,
            "last_error_kind": self.last_error_kind,
        }
