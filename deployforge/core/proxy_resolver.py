"""Proxy upgrade resolver.

Runs after both the implementation and its proxy have been reconciled.
The proxy's ``implementation()`` slot is compared against the resolved
implementation address:

    UNINITIALIZED  (slot reads zero)  ->  upgradeTo(impl, initData)
    STALE          (other address)    ->  upgradeTo(impl, initData)
    CURRENT        (same address)     ->  nothing to send

Every retarget is followed by a re-read of the slot.
"""

from __future__ import annotations

import logging

from deployforge.chain.client import ChainClient, ChainClientError
from deployforge.chain.proxy_abi import (
    decode_address,
    encode_implementation_call,
    encode_upgrade_call,
)
from deployforge.core.create2 import is_null_address
from deployforge.core.errors import (
    ArtifactDeploymentFailed,
    DeploymentVerificationFailed,
    ProxyInitializationFailed,
)
from deployforge.core.hasher import code_hash
from deployforge.models.decisions import ProxyState, UpgradeDecision, UpgradePlan

logger = logging.getLogger(__name__)


class ProxyUpgradeResolver:
    """Points upgradeable proxies at their resolved implementation.

    Parameters
    ----------
    chain:
        Chain client for the network.
    execute:
        Submit upgrade transactions.  False when only planning.
    """

    def __init__(self, chain: ChainClient, *, execute: bool = True) -> None:
        self._chain = chain
        self._execute = execute

    def _read_implementation(self, proxy_address: str) -> str:
        return decode_address(self._chain.call(proxy_address, encode_implementation_call()))

    def observe(self, proxy_address: str, implementation: str) -> tuple[ProxyState, str | None]:
        """Return the proxy state and the implementation it currently points to."""
        if not self._chain.get_code(proxy_address):
            # not deployed yet (planning only)
            return ProxyState.UNINITIALIZED, None
        current = self._read_implementation(proxy_address)
        if is_null_address(current):
            return ProxyState.UNINITIALIZED, None
        if current.lower() == implementation.lower():
            return ProxyState.CURRENT, current
        return ProxyState.STALE, current

    @staticmethod
    def decide(state: ProxyState, *, implementation_deployed: bool) -> UpgradeDecision:
        if state == ProxyState.CURRENT:
            if implementation_deployed:
                return UpgradeDecision.DEPLOY_IMPLEMENTATION
            return UpgradeDecision.NO_OP_ALREADY_CURRENT
        if implementation_deployed:
            return UpgradeDecision.DEPLOY_AND_RETARGET
        return UpgradeDecision.RETARGET_PROXY_ONLY

    def resolve(
        self,
        proxy: str,
        proxy_address: str,
        implementation: str,
        *,
        implementation_deployed: bool = False,
        init_data: bytes = b"",
        sender: str | None = None,
    ) -> UpgradePlan:
        """Observe, decide and (if needed) retarget one proxy.

        Parameters
        ----------
        proxy:
            Registry key of the proxy, for reporting.
        proxy_address:
            Address of the deployed proxy.
        implementation:
            Address the proxy must end up pointing to.
        implementation_deployed:
            Whether the implementation was deployed during this run.
        init_data:
            ABI-encoded initializer arguments forwarded by ``upgradeTo``.
        sender:
            Account submitting the upgrade; the client default if None.

        Raises
        ------
        ProxyInitializationFailed
            The upgrade transaction reverted.
        DeploymentVerificationFailed
            The slot does not hold ``implementation`` afterwards.
        ArtifactDeploymentFailed
            The chain client failed.
        """
        try:
            return self._resolve(
                proxy, proxy_address, implementation,
                implementation_deployed, init_data, sender,
            )
        except ChainClientError as exc:
            raise ArtifactDeploymentFailed(proxy, exc) from exc

    def _resolve(
        self,
        proxy: str,
        proxy_address: str,
        implementation: str,
        implementation_deployed: bool,
        init_data: bytes,
        sender: str | None,
    ) -> UpgradePlan:
        state, previous = self.observe(proxy_address, implementation)
        decision = self.decide(state, implementation_deployed=implementation_deployed)

        previous_hash = None
        if state == ProxyState.STALE and previous is not None:
            previous_hash = code_hash(self._chain.get_code(previous))
            logger.warning(
                "Proxy %s at %s points to %s (codehash %s); retargeting to %s",
                proxy, proxy_address, previous, previous_hash, implementation,
            )

        plan = UpgradePlan(
            proxy=proxy,
            proxy_address=proxy_address,
            state=state,
            decision=decision,
            implementation_address=implementation,
            previous_implementation=previous,
            previous_code_hash=previous_hash,
        )
        if state == ProxyState.CURRENT:
            logger.info("Proxy %s already points to %s", proxy, implementation)
            return plan
        if not self._execute:
            logger.info("Proxy %s would be retargeted to %s", proxy, implementation)
            return plan

        if init_data:
            logger.info("Initializing %s with %d byte(s) of calldata", proxy, len(init_data))
        receipt = self._chain.transact(
            proxy_address, encode_upgrade_call(implementation, init_data), sender=sender
        )
        if not receipt.succeeded:
            raise ProxyInitializationFailed(
                f"upgradeTo({implementation}) reverted on proxy {proxy_address}",
                artifact=proxy,
            )

        current = self._read_implementation(proxy_address)
        if current.lower() != implementation.lower():
            raise DeploymentVerificationFailed(
                f"proxy {proxy_address} points to {current} after upgrade, "
                f"expected {implementation}",
                artifact=proxy,
            )
        logger.info(
            "Proxy %s retargeted to %s (tx %s)", proxy, implementation, receipt.transaction_hash
        )
        return plan.model_copy(update={"transaction_hash": receipt.transaction_hash})
