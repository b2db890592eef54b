"""Tests for DeploymentEngine: the observe/decide/act/commit state machine."""

from __future__ import annotations

import json

import pytest
from eth_utils import to_checksum_address

from deployforge.core.create2 import ZERO_SALT, compute_address, salt_from_seed
from deployforge.core.engine import DeploymentEngine
from deployforge.core.hasher import code_hash
from deployforge.models.artifacts import AbiArgs, DeploymentTarget
from deployforge.models.decisions import DeployVerdict, Observation

PREDICTED = to_checksum_address("0x" + "aa" * 20)
OTHER = to_checksum_address("0x" + "bb" * 20)


def _obs(**overrides) -> Observation:
    fields = {
        "key": "Lib",
        "predicted_address": PREDICTED,
        "predicted_has_code": False,
        "recorded_address": None,
        "recorded_has_code": False,
    }
    fields.update(overrides)
    return Observation(**fields)


class TestDecide:
    """``decide`` is a pure function of the observation."""

    def test_recorded_live_and_matching_skips(self):
        decision = DeploymentEngine.decide(
            _obs(recorded_address=PREDICTED, recorded_has_code=True, predicted_has_code=True)
        )
        assert decision.verdict == DeployVerdict.SKIP
        assert decision.reason == "already deployed"
        assert not decision.deploys

    def test_not_recorded_deploys(self):
        decision = DeploymentEngine.decide(_obs())
        assert decision.verdict == DeployVerdict.DEPLOY
        assert decision.reason == "not recorded"
        assert decision.address == PREDICTED

    def test_libraries_link_and_deploy(self):
        decision = DeploymentEngine.decide(_obs(), has_libraries=True)
        assert decision.verdict == DeployVerdict.LINK_AND_DEPLOY

    def test_recorded_without_code_redeploys(self):
        decision = DeploymentEngine.decide(_obs(recorded_address=PREDICTED))
        assert decision.verdict == DeployVerdict.DEPLOY
        assert decision.reason == "recorded address has no code"

    def test_drift_deploys(self):
        decision = DeploymentEngine.decide(
            _obs(recorded_address=OTHER, recorded_has_code=True)
        )
        assert decision.verdict == DeployVerdict.DEPLOY
        assert decision.reason.startswith("drift")
        assert decision.recorded_address == OTHER

    def test_code_at_predicted_is_adopted(self):
        decision = DeploymentEngine.decide(
            _obs(predicted_has_code=True, recorded_address=OTHER, recorded_has_code=True)
        )
        assert decision.verdict == DeployVerdict.SKIP
        assert decision.reason.startswith("adopted")

    def test_forced_ignores_record(self):
        decision = DeploymentEngine.decide(
            _obs(recorded_address=OTHER, recorded_has_code=True), forced=True
        )
        assert decision.verdict == DeployVerdict.DEPLOY
        assert decision.reason == "forced"

    def test_forced_adopts_existing_code(self):
        decision = DeploymentEngine.decide(
            _obs(recorded_address=PREDICTED, recorded_has_code=True, predicted_has_code=True),
            forced=True,
        )
        assert decision.verdict == DeployVerdict.SKIP
        assert decision.reason.startswith("adopted")

    def test_address_comparison_ignores_case(self):
        decision = DeploymentEngine.decide(
            _obs(
                recorded_address=PREDICTED.lower(),
                recorded_has_code=True,
                predicted_has_code=True,
            )
        )
        assert decision.reason == "already deployed"


@pytest.fixture
def engine(chain, registry, source, network) -> DeploymentEngine:
    return DeploymentEngine(chain, registry, source, network=network)


class TestPrepare:
    def test_predicted_matches_create2(self, engine, chain, bytecodes):
        _, init_code, predicted = engine.prepare(DeploymentTarget(key="Lib", contract="Lib"), {})
        assert init_code == bytes.fromhex(bytecodes["Lib"][2:])
        assert predicted == compute_address(init_code, ZERO_SALT, chain.factory_address)

    def test_constructor_args_appended(self, engine, chain, bytecodes):
        target = DeploymentTarget(
            key="Base",
            contract="Base",
            constructor_args=AbiArgs(types=["uint256"], values=[7]),
            vanity_seed=3,
        )
        _, init_code, predicted = engine.prepare(target, {})
        assert init_code == bytes.fromhex(bytecodes["Base"][2:]) + (7).to_bytes(32, "big")
        assert predicted == compute_address(init_code, salt_from_seed(3), chain.factory_address)

    def test_library_address_changes_prediction(self, engine):
        target = DeploymentTarget(key="Contract", contract="Contract", libraries=["Lib"])
        _, _, first = engine.prepare(target, {"Lib": PREDICTED})
        _, _, second = engine.prepare(target, {"Lib": OTHER})
        assert first != second


class TestReconcileArtifact:
    def test_first_run_deploys_and_persists(self, engine, chain, registry, network):
        record = registry.load(network)
        record, outcome = engine.reconcile_artifact(
            DeploymentTarget(key="Lib", contract="Lib"), record, {}
        )
        assert outcome.verdict == DeployVerdict.DEPLOY
        assert outcome.deployed
        assert chain.get_code(outcome.address)
        assert outcome.code_hash == code_hash(chain.get_code(outcome.address))
        assert record.addresses["Lib"] == outcome.address

        stored = json.loads(registry.path_for(network).read_text())
        assert stored[network]["Lib"] == outcome.address

    def test_second_run_skips_without_transactions(self, engine, chain, registry, network):
        target = DeploymentTarget(key="Lib", contract="Lib")
        record, first = engine.reconcile_artifact(target, registry.load(network), {})
        sent = chain.transaction_count

        record, second = engine.reconcile_artifact(target, registry.load(network), {})
        assert second.verdict == DeployVerdict.SKIP
        assert second.reason == "already deployed"
        assert second.address == first.address
        assert second.transaction_hash is None
        assert chain.transaction_count == sent

    def test_library_target_reports_link_and_deploy(self, engine, registry, network):
        lib_record, lib = engine.reconcile_artifact(
            DeploymentTarget(key="Lib", contract="Lib"), registry.load(network), {}
        )
        _, outcome = engine.reconcile_artifact(
            DeploymentTarget(key="Contract", contract="Contract", libraries=["Lib"]),
            lib_record,
            {"Lib": lib.address},
        )
        assert outcome.verdict == DeployVerdict.LINK_AND_DEPLOY

    def test_adopts_code_deployed_before_commit(self, engine, chain, registry, network, bytecodes):
        chain.send_deployment(bytes.fromhex(bytecodes["Lib"][2:]), ZERO_SALT)
        sent = chain.transaction_count

        record, outcome = engine.reconcile_artifact(
            DeploymentTarget(key="Lib", contract="Lib"), registry.load(network), {}
        )
        assert outcome.verdict == DeployVerdict.SKIP
        assert outcome.reason.startswith("adopted")
        assert record.addresses["Lib"] == outcome.address
        assert chain.transaction_count == sent

    def test_drift_replaces_record(self, engine, chain, registry, network, bytecodes):
        base = chain.send_deployment(bytes.fromhex(bytecodes["Base"][2:]), ZERO_SALT)
        record = registry.record_deployment(registry.load(network), "Lib", base.address)

        record, outcome = engine.reconcile_artifact(
            DeploymentTarget(key="Lib", contract="Lib"), record, {}
        )
        assert outcome.verdict == DeployVerdict.DEPLOY
        assert outcome.reason.startswith("drift")
        assert record.addresses["Lib"] == outcome.address != base.address

    def test_without_persist_registry_untouched(self, chain, registry, source, network):
        engine = DeploymentEngine(chain, registry, source, network=network, persist=False)
        record, outcome = engine.reconcile_artifact(
            DeploymentTarget(key="Lib", contract="Lib"), registry.load(network), {}
        )
        assert outcome.deployed
        assert record.addresses["Lib"] == outcome.address
        assert not registry.path_for(network).exists()

    def test_planning_sends_nothing(self, chain, registry, source, network):
        engine = DeploymentEngine(
            chain, registry, source, network=network, persist=False, execute=False
        )
        original = registry.load(network)
        record, outcome = engine.reconcile_artifact(
            DeploymentTarget(key="Lib", contract="Lib"), original, {}
        )
        assert outcome.verdict == DeployVerdict.DEPLOY
        assert not outcome.deployed
        assert outcome.code_hash == ""
        assert record == original
        assert chain.transaction_count == 0
