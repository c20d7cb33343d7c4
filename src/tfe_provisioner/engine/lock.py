"""Advisory lock guarding the local state file."""

from __future__ import annotations

import fcntl
import logging
from pathlib import Path
from typing import IO, TYPE_CHECKING

from tfe_provisioner.engine.errors import StateLockError

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


class StateLock:
    """Exclusive ``flock`` on ``<state>.lock``, held for the duration of a plan or apply.

    With ``blocking=False`` a held lock fails immediately with
    ``StateLockError`` instead of waiting for the other process.
    """

    def __init__(self, state_path: Path, *, blocking: bool = True) -> None:
        self.path = Path(f"{state_path}.lock")
        self._blocking = blocking
        self._handle: IO[str] | None = None

    @property
    def locked(self) -> bool:
        return self._handle is not None

    def acquire(self) -> None:
        if self._handle is not None:
            raise StateLockError(f"State lock {self.path} is already held")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handle = self.path.open("a+", encoding="utf-8")
        flags = fcntl.LOCK_EX if self._blocking else fcntl.LOCK_EX | fcntl.LOCK_NB
        try:
            fcntl.flock(handle.fileno(), flags)
        except OSError as e:
            handle.close()
            raise StateLockError(f"Could not lock {self.path}: {e}") from e
        self._handle = handle
        logger.debug("Acquired state lock %s", self.path)

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None
        logger.debug("Released state lock %s", self.path)

    def __enter__(self) -> StateLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
