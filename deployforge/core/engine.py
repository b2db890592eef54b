"""Deployment decision engine: observe, decide, act, commit.

One artifact at a time, in dependency order:

1. **Observe** the predicted CREATE2 address of the fully linked init code,
   the code living there, the recorded address and the code living there.
2. **Decide** a ``DeployVerdict`` from that observation alone
   (``DeploymentEngine.decide`` is pure).
3. **Act**: submit the deployment through the chain client and re-verify
   that code landed at the predicted address.
4. **Commit** the address and runtime code hash to the network record,
   persisting it before the next artifact is touched.

A crash between act and commit is recovered on the next run: the code is
found at the predicted address and adopted without a transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from deployforge.chain.client import ChainClient, ChainClientError
from deployforge.core.artifact_source import BytecodeSource
from deployforge.core.create2 import compute_address, salt_from_seed
from deployforge.core.errors import ArtifactDeploymentFailed, DeploymentVerificationFailed
from deployforge.core.hasher import code_hash
from deployforge.core.linker import link
from deployforge.core.registry import AddressRegistry
from deployforge.models.artifacts import DeploymentTarget, LinkedBytecode
from deployforge.models.decisions import (
    ArtifactOutcome,
    DeployDecision,
    DeployVerdict,
    Observation,
)
from deployforge.models.registry import NetworkRecord

logger = logging.getLogger(__name__)


def _same_address(a: str | None, b: str | None) -> bool:
    return bool(a) and bool(b) and a.lower() == b.lower()


class DeploymentEngine:
    """Reconciles single deployment targets against one network.

    Parameters
    ----------
    chain:
        Chain client for the network.
    registry:
        Address registry the record is persisted to.
    source:
        Provides unlinked creation bytecode per contract name.
    network:
        Network identifier, used for logging and error context.
    persist:
        Write the record after every commit.  False on dry-run networks.
    execute:
        Submit transactions.  False when only planning.
    """

    def __init__(
        self,
        chain: ChainClient,
        registry: AddressRegistry,
        source: BytecodeSource,
        *,
        network: str,
        persist: bool = True,
        execute: bool = True,
    ) -> None:
        self._chain = chain
        self._registry = registry
        self._source = source
        self._network = network
        self._persist = persist
        self._execute = execute

    # ------------------------------------------------------------------
    # Observe
    # ------------------------------------------------------------------

    def prepare(
        self,
        target: DeploymentTarget,
        library_addresses: Mapping[str, str],
    ) -> tuple[LinkedBytecode, bytes, str]:
        """Link the target and compute its init code and predicted address."""
        linked = link(
            self._source.bytecode(target.contract),
            target.libraries,
            library_addresses,
            contract=target.key,
        )
        init_code = linked.to_bytes() + target.constructor_args.encode()
        predicted = compute_address(
            init_code, salt_from_seed(target.vanity_seed), self._chain.factory_address
        )
        return linked, init_code, predicted

    def observe(self, key: str, predicted: str, recorded: str | None) -> Observation:
        """Read live code at the predicted and recorded addresses."""
        predicted_has_code = bool(self._chain.get_code(predicted))
        if recorded is None:
            recorded_has_code = False
        elif _same_address(recorded, predicted):
            recorded_has_code = predicted_has_code
        else:
            recorded_has_code = bool(self._chain.get_code(recorded))
        observation = Observation(
            key=key,
            predicted_address=predicted,
            predicted_has_code=predicted_has_code,
            recorded_address=recorded,
            recorded_has_code=recorded_has_code,
        )
        logger.debug("Observed %s", observation)
        return observation

    # ------------------------------------------------------------------
    # Decide
    # ------------------------------------------------------------------

    @staticmethod
    def decide(
        observation: Observation,
        *,
        forced: bool = False,
        has_libraries: bool = False,
    ) -> DeployDecision:
        """Pure verdict for one observation.

        A forced artifact ignores its recorded address.  Code already at the
        predicted address is always adopted: a CREATE2 deployment there
        would revert.
        """
        predicted = observation.predicted_address
        recorded = None if forced else observation.recorded_address

        def verdict(v: DeployVerdict, reason: str) -> DeployDecision:
            return DeployDecision(
                key=observation.key,
                verdict=v,
                address=predicted,
                recorded_address=observation.recorded_address,
                reason=reason,
            )

        if recorded and observation.recorded_has_code and _same_address(recorded, predicted):
            return verdict(DeployVerdict.SKIP, "already deployed")
        if observation.predicted_has_code:
            return verdict(DeployVerdict.SKIP, "adopted existing code at predicted address")

        deploy = DeployVerdict.LINK_AND_DEPLOY if has_libraries else DeployVerdict.DEPLOY
        if forced:
            return verdict(deploy, "forced")
        if recorded is None:
            return verdict(deploy, "not recorded")
        if not _same_address(recorded, predicted):
            return verdict(deploy, f"drift: recorded {recorded}")
        return verdict(deploy, "recorded address has no code")

    # ------------------------------------------------------------------
    # Act + commit
    # ------------------------------------------------------------------

    def _deploy(self, target: DeploymentTarget, init_code: bytes, predicted: str) -> tuple[str, bytes]:
        receipt = self._chain.send_deployment(
            init_code, salt_from_seed(target.vanity_seed), sender=target.sender
        )
        if receipt.address is not None and not _same_address(receipt.address, predicted):
            raise DeploymentVerificationFailed(
                f"'{target.key}' landed at {receipt.address}, expected {predicted}",
                artifact=target.key,
            )
        code = self._chain.get_code(predicted)
        if not code:
            raise DeploymentVerificationFailed(
                f"no code at {predicted} after deploying '{target.key}' "
                f"(tx {receipt.transaction_hash})",
                artifact=target.key,
            )
        return receipt.transaction_hash, code

    def reconcile_artifact(
        self,
        target: DeploymentTarget,
        record: NetworkRecord,
        library_addresses: Mapping[str, str],
        *,
        forced: bool = False,
    ) -> tuple[NetworkRecord, ArtifactOutcome]:
        """Bring one target in line with the chain; returns the updated record.

        Raises
        ------
        ArtifactDeploymentFailed
            The chain client failed while observing or deploying.
        DeploymentVerificationFailed
            The deployment did not produce code at the predicted address.
        """
        _, init_code, predicted = self.prepare(target, library_addresses)
        recorded = self._registry.get(record, target.key)

        try:
            observation = self.observe(target.key, predicted, recorded)
            decision = self.decide(
                observation, forced=forced, has_libraries=bool(target.libraries)
            )

            tx_hash: str | None = None
            runtime = b""
            if decision.deploys:
                logger.info(
                    "%s %s at %s (%s)",
                    decision.verdict.value, target.key, predicted, decision.reason,
                )
                if self._execute:
                    tx_hash, runtime = self._deploy(target, init_code, predicted)
            else:
                if decision.reason.startswith("adopted"):
                    logger.warning("%s: %s %s", target.key, decision.reason, predicted)
                else:
                    logger.info("skip %s at %s (%s)", target.key, predicted, decision.reason)
                runtime = self._chain.get_code(predicted)
        except ChainClientError as exc:
            raise ArtifactDeploymentFailed(target.key, exc) from exc

        if not runtime:
            # planning only: nothing was deployed, nothing to commit
            return record, ArtifactOutcome(
                key=target.key,
                contract=target.contract,
                verdict=decision.verdict,
                address=predicted,
                reason=decision.reason,
            )

        digest = code_hash(runtime)
        record = self._commit(record, target.key, predicted, digest)
        return record, ArtifactOutcome(
            key=target.key,
            contract=target.contract,
            verdict=decision.verdict,
            address=predicted,
            code_hash=digest,
            reason=decision.reason,
            transaction_hash=tx_hash,
        )

    def _commit(
        self, record: NetworkRecord, key: str, address: str, digest: str
    ) -> NetworkRecord:
        unchanged = (
            _same_address(record.addresses.get(key), address)
            and record.code_hashes.get(key) == digest
        )
        if unchanged:
            return record
        record = self._registry.record_deployment(record, key, address, digest)
        if self._persist:
            self._registry.persist(record)
            logger.debug("Committed %s=%s on %s", key, address, self._network)
        return record
