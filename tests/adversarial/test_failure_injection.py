"""Adversarial tests: a misbehaving chain must never corrupt the registry.

Covers:
1. Deployments that report success but leave no code (or land elsewhere)
2. RPC failures mid-run, and resuming after them
3. Proxy upgrades that revert or do not take effect
4. Registry writes that fail after a successful deployment
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from deployforge.chain.client import ChainClientError, DeploymentReceipt, TransactionReceipt
from deployforge.chain.memory import InMemoryChain
from deployforge.core.errors import (
    ArtifactDeploymentFailed,
    DeploymentVerificationFailed,
    ProxyInitializationFailed,
    RegistryPersistenceFailed,
    UnresolvedLibraryMarker,
)
from deployforge.core.orchestrator import Orchestrator
from deployforge.core.registry import AddressRegistry
from deployforge.core.spec_table import ArtifactSpecTable
from deployforge.models.config import RunConfig

NETWORK = "ethereum:sepolia"


# ---------------------------------------------------------------------------
# Faulty chains
# ---------------------------------------------------------------------------


class GhostDeployChain(InMemoryChain):
    """Confirms deployments without ever storing code."""

    def send_deployment(self, init_code, salt, *, sender=None):
        return DeploymentReceipt(transaction_hash="0x" + "00" * 32, address=None)


class MisroutingChain(InMemoryChain):
    """Deploys, but reports a different address in the receipt."""

    def send_deployment(self, init_code, salt, *, sender=None):
        receipt = super().send_deployment(init_code, salt, sender=sender)
        return receipt.model_copy(update={"address": "0x" + "12" * 20})


class FlakyChain(InMemoryChain):
    """Fails every deployment after the first ``healthy`` ones."""

    def __init__(self, healthy: int) -> None:
        super().__init__()
        self.healthy = healthy

    def send_deployment(self, init_code, salt, *, sender=None):
        if self.healthy <= 0:
            raise ChainClientError("transaction not confirmed within 180.0s")
        self.healthy -= 1
        return super().send_deployment(init_code, salt, sender=sender)


class RevertingProxyChain(InMemoryChain):
    def transact(self, address, data, *, sender=None):
        return TransactionReceipt(transaction_hash="0x" + "ff" * 32, status=0)


class IgnoringProxyChain(InMemoryChain):
    """Reports upgrade success without touching the implementation slot."""

    def transact(self, address, data, *, sender=None):
        return TransactionReceipt(transaction_hash="0x" + "ee" * 32, status=1)


def _run(chain, registry, source, proxy_contract, specs, network=NETWORK):
    orchestrator = Orchestrator(
        ArtifactSpecTable.from_mapping(specs, network),
        chain,
        registry,
        source,
        proxy_contract=proxy_contract,
    )
    return orchestrator.run(RunConfig(network=network))


# ---------------------------------------------------------------------------
# Deployment verification
# ---------------------------------------------------------------------------


class TestDeploymentVerification:
    def test_no_code_after_deploy(self, registry, source, proxy_contract, lib_specs):
        with pytest.raises(DeploymentVerificationFailed) as exc_info:
            _run(GhostDeployChain(), registry, source, proxy_contract, lib_specs)
        assert exc_info.value.artifact == "Lib"
        assert exc_info.value.network == NETWORK
        assert not registry.path_for(NETWORK).exists()

    def test_receipt_address_mismatch(self, registry, source, proxy_contract, lib_specs):
        with pytest.raises(DeploymentVerificationFailed):
            _run(MisroutingChain(), registry, source, proxy_contract, lib_specs)
        assert registry.load(NETWORK).addresses == {}


# ---------------------------------------------------------------------------
# Chain failures and resume
# ---------------------------------------------------------------------------


class TestChainFailures:
    def test_failure_halts_run_and_keeps_earlier_commits(
        self, registry, source, proxy_contract, lib_specs
    ):
        chain = FlakyChain(healthy=1)
        with pytest.raises(ArtifactDeploymentFailed) as exc_info:
            _run(chain, registry, source, proxy_contract, lib_specs)
        assert exc_info.value.artifact == "Contract"
        assert isinstance(exc_info.value.cause, ChainClientError)
        assert exc_info.value.network == NETWORK

        record = registry.load(NETWORK)
        assert list(record.addresses) == ["Lib"]

    def test_resume_only_sends_what_is_missing(
        self, registry, source, proxy_contract, lib_specs
    ):
        chain = FlakyChain(healthy=1)
        with pytest.raises(ArtifactDeploymentFailed):
            _run(chain, registry, source, proxy_contract, lib_specs)

        chain.healthy = 10
        report = _run(chain, registry, source, proxy_contract, lib_specs)
        assert report.outcome("Lib").reason == "already deployed"
        assert report.outcome("Contract").deployed
        assert report.transactions == 1

    def test_lost_commit_is_adopted(self, registry, source, proxy_contract, lib_specs, chain):
        first = _run(chain, registry, source, proxy_contract, lib_specs)
        registry.path_for(NETWORK).unlink()  # deployment happened, record lost

        report = _run(chain, registry, source, proxy_contract, lib_specs)
        assert report.transactions == 0
        assert all(o.reason.startswith("adopted") for o in report.outcomes)
        assert registry.load(NETWORK).addresses["Contract"] == first.outcome("Contract").address

    def test_chain_reset_redeploys(self, registry, source, proxy_contract, lib_specs, chain):
        _run(chain, registry, source, proxy_contract, lib_specs)
        chain.reset()

        report = _run(chain, registry, source, proxy_contract, lib_specs)
        assert report.transactions == 2
        assert all(o.reason == "recorded address has no code" for o in report.outcomes)

    def test_tampered_record_is_corrected(self, registry, source, proxy_contract, lib_specs, chain):
        first = _run(chain, registry, source, proxy_contract, lib_specs)
        path = registry.path_for(NETWORK)
        data = json.loads(path.read_text())
        data[NETWORK]["Lib"] = first.outcome("Contract").address
        path.write_text(json.dumps(data))

        report = _run(chain, registry, source, proxy_contract, lib_specs)
        assert report.transactions == 0
        assert registry.load(NETWORK).addresses["Lib"] == first.outcome("Lib").address


# ---------------------------------------------------------------------------
# Proxies
# ---------------------------------------------------------------------------


class TestProxyFailures:
    def test_upgrade_revert(self, registry, source, bytecodes, proxy_contract, proxy_specs):
        chain = RevertingProxyChain()
        chain.register_proxy(bytecodes[proxy_contract])
        with pytest.raises(ProxyInitializationFailed) as exc_info:
            _run(chain, registry, source, proxy_contract, proxy_specs)
        assert exc_info.value.artifact == "Board"
        # implementation and proxy were committed before the upgrade
        assert set(registry.load(NETWORK).addresses) == {"BoardImpl", "Board"}

    def test_upgrade_without_effect(self, registry, source, bytecodes, proxy_contract, proxy_specs):
        chain = IgnoringProxyChain()
        chain.register_proxy(bytecodes[proxy_contract])
        with pytest.raises(DeploymentVerificationFailed) as exc_info:
            _run(chain, registry, source, proxy_contract, proxy_specs)
        assert exc_info.value.artifact == "Board"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistryFailures:
    def test_corrupt_registry_aborts_before_sending(
        self, registry, source, proxy_contract, lib_specs, chain
    ):
        path = registry.path_for(NETWORK)
        path.parent.mkdir(parents=True)
        path.write_text("{ truncated")
        with pytest.raises(RegistryPersistenceFailed) as exc_info:
            _run(chain, registry, source, proxy_contract, lib_specs)
        assert exc_info.value.network == NETWORK
        assert chain.transaction_count == 0

    def test_write_failure_then_recovery(
        self, tmp_dir: Path, source, proxy_contract, lib_specs, chain
    ):
        blocker = tmp_dir / "blocked"
        blocker.write_text("")
        with pytest.raises(RegistryPersistenceFailed):
            _run(chain, AddressRegistry(blocker), source, proxy_contract, lib_specs)
        assert chain.transaction_count == 1

        report = _run(chain, AddressRegistry(tmp_dir / "ok"), source, proxy_contract, lib_specs)
        assert report.outcome("Lib").reason.startswith("adopted")
        assert report.transactions == 1

    def test_undeclared_library_marker_deploys_nothing(
        self, registry, source, proxy_contract, chain
    ):
        with pytest.raises(UnresolvedLibraryMarker):
            _run(chain, registry, source, proxy_contract, {"Contract": {}})
        assert chain.transaction_count == 0
