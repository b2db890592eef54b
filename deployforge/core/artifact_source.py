"""Compiled bytecode lookup.

Compilation itself is out of scope: the engine only reads the creation
bytecode a Truffle, Hardhat or Foundry build left behind.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from deployforge.core.errors import UnknownArtifact


@runtime_checkable
class BytecodeSource(Protocol):
    """Anything that returns unlinked creation bytecode for a contract name."""

    def bytecode(self, contract: str) -> str:
        """Return 0x-prefixed creation bytecode, library markers included."""
        ...


def _extract_bytecode(data: Mapping[str, Any]) -> str:
    code = data.get("bytecode")
    if isinstance(code, Mapping):  # Foundry: {"object": "0x...", ...}
        code = code.get("object")
    if not isinstance(code, str):
        return ""
    return code if code.startswith("0x") else "0x" + code


class BuildArtifactSource:
    """Reads ``<Contract>.json`` build outputs below a directory.

    Truffle writes ``build/contracts/X.json``; Hardhat and Foundry nest
    them as ``.../X.sol/X.json``.  The first match in sorted path order wins.

    Parameters
    ----------
    base_path:
        Root directory to search.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._cache: dict[str, str] = {}

    def _find(self, contract: str) -> Path | None:
        direct = self._base / f"{contract}.json"
        if direct.is_file():
            return direct
        matches = sorted(self._base.rglob(f"{contract}.json"))
        return matches[0] if matches else None

    def bytecode(self, contract: str) -> str:
        if contract in self._cache:
            return self._cache[contract]
        path = self._find(contract)
        if path is None:
            raise UnknownArtifact(contract, detail=f"no build artifact under {self._base}")
        code = _extract_bytecode(json.loads(path.read_text(encoding="utf-8")))
        if len(code) <= 2:
            raise UnknownArtifact(contract, detail=f"abstract or empty bytecode in {path}")
        self._cache[contract] = code
        return code


class StaticBytecodeSource:
    """In-memory bytecode table, for tests and the demo."""

    def __init__(self, bytecodes: Mapping[str, str] | None = None) -> None:
        self._bytecodes: dict[str, str] = dict(bytecodes or {})

    def set(self, contract: str, bytecode: str) -> None:
        self._bytecodes[contract] = bytecode

    def bytecode(self, contract: str) -> str:
        try:
            return self._bytecodes[contract]
        except KeyError:
            raise UnknownArtifact(contract, detail="no bytecode registered") from None
