"""File-backed address registry, one JSON file per network.

Layout of ``{base_path}/{network}.json``::

    {
      "<network>": {"<artifact>": "<address>", ...},
      "$codehashes": {"<network>": {"<artifact>": "<keccak of runtime code>"}}
    }

Design:
- ``load`` never fails on a missing file; it returns an empty record.
- ``record_deployment`` is pure and returns a new ``NetworkRecord``.
- ``persist`` writes to a temp file in the same directory and renames it
  into place, so a crash mid-write leaves the previous file intact.
- Unknown keys, top-level or inside the network mapping, survive a write.
- Single writer per network per run; concurrent writers are not supported.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from deployforge.core.create2 import is_null_address
from deployforge.core.errors import RegistryPersistenceFailed
from deployforge.models.registry import NetworkRecord

logger = logging.getLogger(__name__)

CODEHASHES_KEY = "$codehashes"

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]")


class AddressRegistry:
    """Persistent per-network record of deployed artifact addresses.

    Parameters
    ----------
    base_path:
        Directory holding one registry file per network.  Created on the
        first ``persist``.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)

    @property
    def base_path(self) -> Path:
        return self._base

    def path_for(self, network: str) -> Path:
        """Registry file for ``network`` (``:`` and other unsafe chars become ``_``)."""
        return self._base / f"{_UNSAFE_FILENAME.sub('_', network)}.json"

    def _read(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise RegistryPersistenceFailed(f"Cannot read registry {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise RegistryPersistenceFailed(f"Registry {path} is not a JSON object")
        return data

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def load(self, network: str) -> NetworkRecord:
        """Return the record for ``network``; empty if nothing was persisted yet."""
        path = self.path_for(network)
        data = self._read(path)
        section = _section(data, network, path)
        hashes = _section(_section(data, CODEHASHES_KEY, path), network, path)
        addresses: dict[str, str | None] = {}
        extra: dict[str, Any] = {}
        for key, value in section.items():
            if value is None or isinstance(value, str):
                addresses[key] = value
            else:
                extra[key] = value
        code_hashes = dict(hashes)
        logger.debug(
            "Loaded registry for %s: %d address(es)", network, len(addresses)
        )
        return NetworkRecord(
            network=network,
            addresses=addresses,
            code_hashes=code_hashes,
            extra=extra,
        )

    @staticmethod
    def get(record: NetworkRecord, name: str) -> str | None:
        """Return the recorded address, treating zero/malformed entries as absent."""
        address = record.addresses.get(name)
        if is_null_address(address):
            return None
        return address

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    @staticmethod
    def record_deployment(
        record: NetworkRecord,
        name: str,
        address: str,
        code_hash: str | None = None,
    ) -> NetworkRecord:
        """Return a new record with ``name`` pointing at ``address``."""
        code_hashes = dict(record.code_hashes)
        if code_hash:
            code_hashes[name] = code_hash
        else:
            code_hashes.pop(name, None)
        return record.model_copy(
            update={
                "addresses": {**record.addresses, name: address},
                "code_hashes": code_hashes,
            }
        )

    def persist(self, record: NetworkRecord) -> Path:
        """Durably write ``record``, preserving keys this process does not know."""
        path = self.path_for(record.network)
        data = self._read(path)

        section = dict(_section(data, record.network, path))
        section.update(record.extra)
        section.update(record.addresses)
        data[record.network] = section

        # Hashes of artifacts this record holds are replaced, not merged, so a
        # hash dropped by ``record_deployment`` does not come back from disk.
        hashes = dict(_section(data, CODEHASHES_KEY, path))
        on_disk = _section(hashes, record.network, path)
        hashes[record.network] = {
            **{k: v for k, v in on_disk.items() if k not in record.addresses},
            **record.code_hashes,
        }
        data[CODEHASHES_KEY] = hashes

        try:
            _atomic_write_text(path, json.dumps(data, indent=4) + "\n")
        except OSError as exc:
            raise RegistryPersistenceFailed(
                f"Cannot write registry {path}: {exc}", network=record.network
            ) from exc
        logger.debug("Persisted registry for %s to %s", record.network, path)
        return path

    def networks(self) -> list[str]:
        """Networks with a registry file, sorted."""
        if not self._base.is_dir():
            return []
        found: list[str] = []
        for path in sorted(self._base.glob("*.json")):
            data = self._read(path)
            found.extend(k for k in data if k != CODEHASHES_KEY and isinstance(data[k], dict))
        return sorted(set(found))


def _section(data: dict[str, Any], key: str, path: Path) -> dict[str, Any]:
    """Nested mapping under ``key``; absent or null reads as empty."""
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RegistryPersistenceFailed(
            f"Registry {path}: entry {key!r} is not a JSON object"
        )
    return value


def _atomic_write_text(path: Path, content: str) -> None:
    """Write to a sibling temp file, fsync, then ``os.replace`` into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
