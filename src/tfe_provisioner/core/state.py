"""Local state file recording the test variables this tool manages.

The state is the only place a sensitive variable's value survives: TFE
accepts it on write and returns an empty string on every read, so the last
submitted value is kept here (in plaintext, hence mode ``0600``).
"""

import contextlib
import hashlib
import json
import logging
import os
import tempfile
import uuid
from collections import defaultdict
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

STATE_VERSION = 1


def fingerprint(obj: Any) -> str:
    """SHA-256 of *obj* serialised as canonical JSON."""
    payload = json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _now() -> datetime:
    return datetime.now(UTC)


def _write_private(path: Path, content: str) -> None:
    """Replace *path* atomically with an owner-only file holding *content*."""
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    tmp_path = Path(tmp)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.chmod(0o600)
        tmp_path.replace(path)
    finally:
        with contextlib.suppress(FileNotFoundError):
            tmp_path.unlink()


class ResourceInstance(BaseModel):
    """One managed variable as last observed.

    ``attributes`` holds the observed attribute set (``id``, ``key``,
    ``value``, ``readable_value``, ``category`` and so on) plus the module
    scope it was addressed with.
    """

    address: str
    resource_type: str
    name: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def resource_id(self) -> str | None:
        return self.attributes.get("id")

    @property
    def fingerprint(self) -> str:
        return fingerprint(self.attributes)

    @property
    def module_path(self) -> str:
        """``organization/module_name/module_provider`` from the stored scope."""
        a = self.attributes
        return f"{a.get('organization')}/{a.get('module_name')}/{a.get('module_provider')}"


class State(BaseModel):
    """Serial-numbered snapshot of every managed variable.

    ``serial`` increases on every write and ``lineage`` identifies the file
    across its lifetime; together with :meth:`digest` they let a saved plan
    detect that state moved underneath it.
    """

    version: int = STATE_VERSION
    organization: str
    serial: int = 0
    lineage: str = Field(default_factory=lambda: str(uuid.uuid4()))
    resources: dict[str, ResourceInstance] = Field(default_factory=dict)

    def record(
        self, address: str, resource_type: str, name: str, attributes: Mapping[str, Any]
    ) -> ResourceInstance:
        """Insert or overwrite *address*, keeping its original ``created_at``."""
        prior = self.resources.get(address)
        inst = ResourceInstance(
            address=address,
            resource_type=resource_type,
            name=name,
            attributes=dict(attributes),
            created_at=prior.created_at if prior is not None else _now(),
        )
        self.resources[address] = inst
        return inst

    def forget(self, address: str) -> ResourceInstance | None:
        return self.resources.pop(address, None)

    def by_module(self) -> dict[str, list[ResourceInstance]]:
        grouped: dict[str, list[ResourceInstance]] = defaultdict(list)
        for address in sorted(self.resources):
            inst = self.resources[address]
            grouped[inst.module_path].append(inst)
        return dict(sorted(grouped.items()))

    def digest(self) -> str:
        """Content digest that ignores timestamps."""
        return fingerprint(
            {
                "version": self.version,
                "organization": self.organization,
                "lineage": self.lineage,
                "serial": self.serial,
                "resources": {
                    address: [inst.resource_type, inst.name, inst.fingerprint]
                    for address, inst in self.resources.items()
                },
            }
        )

    def save(self, path: Path) -> None:
        """Write to *path*, keeping the previous file as ``<path>.backup``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with contextlib.suppress(FileNotFoundError):
            Path(f"{path}.backup").write_bytes(path.read_bytes())
        _write_private(path, self.model_dump_json(indent=2) + "\n")
        logger.debug("Wrote state serial %d to %s", self.serial, path)

    def commit(self, path: Path) -> None:
        """Bump ``serial`` and save."""
        self.serial += 1
        self.save(path)

    @classmethod
    def load(cls, path: Path) -> "State":
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    @classmethod
    def load_or_create(cls, path: Path, organization: str) -> "State":
        if path.exists():
            return cls.load(path)
        logger.debug("No state at %s, starting empty for %s", path, organization)
        return cls(organization=organization)
