"""Shared test fixtures for deployforge."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from deployforge.chain.memory import InMemoryChain
from deployforge.core.artifact_source import StaticBytecodeSource
from deployforge.core.linker import library_marker
from deployforge.core.orchestrator import Orchestrator
from deployforge.core.registry import AddressRegistry
from deployforge.core.spec_table import ArtifactSpecTable

PROXY_CONTRACT = "TestProxy"


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def bytecodes() -> dict[str, str]:
    """Synthetic creation bytecode keyed by contract name.

    ``Contract`` and ``Consumer`` embed the ``Lib`` placeholder; every entry
    is distinct so each contract lands at its own address.
    """
    marker = library_marker("Lib")
    return {
        "Lib": "0x6080604052348015600f57600080fd5b50",
        "Contract": "0x6080604052" + "73" + marker + "5af4",
        "Consumer": "0x6080604053" + "73" + marker + "5af4" + "73" + marker,
        "Base": "0x60806040526001600055",
        "BoardImpl": "0x60806040526002600055",
        "BoardImplV2": "0x60806040526003600055",
        PROXY_CONTRACT: "0x608060405260405161",
    }


@pytest.fixture
def source(bytecodes: dict[str, str]) -> StaticBytecodeSource:
    """Provide an in-memory bytecode table."""
    return StaticBytecodeSource(bytecodes)


@pytest.fixture
def chain(bytecodes: dict[str, str]) -> InMemoryChain:
    """Provide an empty in-memory chain that knows the test proxy."""
    chain = InMemoryChain()
    chain.register_proxy(bytecodes[PROXY_CONTRACT])
    return chain


@pytest.fixture
def registry(tmp_dir: Path) -> AddressRegistry:
    """Provide an AddressRegistry rooted in a temp directory."""
    return AddressRegistry(tmp_dir / "registry")


@pytest.fixture
def network() -> str:
    """Provide a persisting network identifier."""
    return "ethereum:sepolia"


# ---------------------------------------------------------------------------
# Spec tables and orchestrators
# ---------------------------------------------------------------------------


@pytest.fixture
def lib_specs() -> dict[str, Any]:
    """A library plus one contract linked against it."""
    return {"Lib": {}, "Contract": {"baseLibs": ["Lib"]}}


@pytest.fixture
def proxy_specs() -> dict[str, Any]:
    """One upgradable artifact fronted by a proxy."""
    return {
        "Board": {
            "contract": "BoardImpl",
            "upgradable": True,
            "vanity": 1,
            "mutables": {"types": ["uint256"], "values": [42]},
        },
    }


@pytest.fixture
def make_table() -> Callable[..., ArtifactSpecTable]:
    """Factory fixture: build a table from ``{name: fields}`` data."""

    def _factory(data: dict[str, Any], network: str | None = None) -> ArtifactSpecTable:
        return ArtifactSpecTable.from_mapping(data, network)

    return _factory


@pytest.fixture
def make_orchestrator(
    chain: InMemoryChain,
    registry: AddressRegistry,
    source: StaticBytecodeSource,
    make_table: Callable[..., ArtifactSpecTable],
) -> Callable[..., Orchestrator]:
    """Factory fixture: an Orchestrator over the shared chain and registry."""

    def _factory(data: dict[str, Any], network: str | None = None) -> Orchestrator:
        return Orchestrator(
            make_table(data, network),
            chain,
            registry,
            source,
            proxy_contract=PROXY_CONTRACT,
        )

    return _factory


@pytest.fixture
def proxy_contract() -> str:
    """Contract name of the proxy deployed in front of upgradable artifacts."""
    return PROXY_CONTRACT
