"""Run orchestrator: reconciles one network end to end.

The Orchestrator wires the ArtifactSpecTable, AddressRegistry,
DeploymentEngine and ProxyUpgradeResolver into a single sequential run:

1. Order the selected artifacts (plus dependencies) topologically.
2. Load the network's record from the registry.
3. For each artifact, build its ``DeploymentTarget`` from addresses
   resolved earlier in the run, and hand it to the engine.
4. For upgradable artifacts, reconcile the implementation, then the proxy,
   then retarget the proxy.

The first error aborts the network's run.  Everything committed before it
stays in the registry, so the next run resumes where this one stopped.
"""

from __future__ import annotations

import logging

from deployforge.chain.client import ChainClient
from deployforge.core.artifact_source import BytecodeSource
from deployforge.core.engine import DeploymentEngine
from deployforge.core.errors import (
    DeploymentError,
    DeploymentVerificationFailed,
    MissingLibraryAddress,
)
from deployforge.core.proxy_resolver import ProxyUpgradeResolver
from deployforge.core.registry import AddressRegistry
from deployforge.core.spec_table import ArtifactSpecTable
from deployforge.models.artifacts import AbiArgs, ArtifactSpec, DeploymentTarget
from deployforge.models.config import RunConfig
from deployforge.models.decisions import ArtifactOutcome, DeployVerdict, RunReport, UpgradePlan
from deployforge.models.registry import NetworkRecord

logger = logging.getLogger(__name__)

DEFAULT_PROXY_CONTRACT = "ForgeProxy"


class Orchestrator:
    """Central deployment coordinator for one spec table.

    Parameters
    ----------
    table:
        Artifact declarations, already merged for the target network.
    chain:
        Chain client for the network.
    registry:
        Address registry holding the per-network records.
    source:
        Compiled bytecode lookup.
    proxy_contract:
        Contract name of the proxy deployed in front of upgradable artifacts.
    """

    def __init__(
        self,
        table: ArtifactSpecTable,
        chain: ChainClient,
        registry: AddressRegistry,
        source: BytecodeSource,
        *,
        proxy_contract: str = DEFAULT_PROXY_CONTRACT,
    ) -> None:
        self.table = table
        self.chain = chain
        self.registry = registry
        self.source = source
        self.proxy_contract = proxy_contract

    # ------------------------------------------------------------------
    # Target construction
    # ------------------------------------------------------------------

    def _dependency_addresses(
        self, spec: ArtifactSpec, resolved: dict[str, str]
    ) -> list[str]:
        addresses = []
        for dep in spec.base_deps:
            if dep not in resolved:
                raise MissingLibraryAddress(dep, artifact=spec.name)
            addresses.append(resolved[dep])
        return addresses

    def _library_addresses(
        self, spec: ArtifactSpec, resolved: dict[str, str]
    ) -> tuple[list[str], dict[str, str]]:
        """Marker names to link, and marker name to address for those resolved."""
        libraries: list[str] = []
        addresses: dict[str, str] = {}
        for lib in spec.base_libs:
            marker = self.table.resolve(lib).contract
            libraries.append(marker)
            if lib in resolved:
                addresses[marker] = resolved[lib]
        return libraries, addresses

    def _proxy_target(self, spec: ArtifactSpec) -> DeploymentTarget:
        # Proxy init code never depends on the implementation or its links.
        return DeploymentTarget(
            key=spec.name,
            contract=self.proxy_contract,
            constructor_args=AbiArgs(),
            vanity_seed=spec.vanity_seed,
            sender=spec.sender,
        )

    def targets_for(
        self, spec: ArtifactSpec, resolved: dict[str, str]
    ) -> list[DeploymentTarget]:
        """Deployment targets for one artifact, in the order they must run.

        A plain artifact yields one target.  An upgradable one yields its
        implementation (keyed by contract name, unsalted) and its proxy
        (keyed by artifact name, salted with the vanity seed).
        """
        libraries, _ = self._library_addresses(spec, resolved)
        args = spec.constructor_args(self._dependency_addresses(spec, resolved))
        if not spec.upgradable:
            return [
                DeploymentTarget(
                    key=spec.name,
                    contract=spec.contract,
                    libraries=libraries,
                    constructor_args=args,
                    vanity_seed=spec.vanity_seed,
                    sender=spec.sender,
                )
            ]
        return [
            DeploymentTarget(
                key=spec.contract,
                contract=spec.contract,
                libraries=libraries,
                constructor_args=args,
                sender=spec.sender,
            ),
            self._proxy_target(spec),
        ]

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def run(self, config: RunConfig) -> RunReport:
        """Reconcile ``config.network``; returns the run summary.

        Raises the first ``DeploymentError`` met, with the network attached.
        """
        network = config.network
        try:
            order = self.table.topological_order(config.selection or None)
            record = self.registry.load(network)
        except DeploymentError as exc:
            raise exc.with_network(network)

        engine = DeploymentEngine(
            self.chain,
            self.registry,
            self.source,
            network=network,
            persist=config.persists,
            execute=config.executes,
        )
        resolver = ProxyUpgradeResolver(self.chain, execute=config.executes)

        logger.info(
            "Run %s: reconciling %d artifact(s) on %s%s",
            config.run_id, len(order), network,
            " (dry run)" if not config.persists else "",
        )

        resolved: dict[str, str] = {}
        claimed: dict[str, str] = {}
        outcomes: list[ArtifactOutcome] = []
        upgrades: list[UpgradePlan] = []

        for name in order:
            spec = self.table.resolve(name)
            try:
                record = self._reconcile(
                    spec, record, engine, resolver, config,
                    resolved, claimed, outcomes, upgrades,
                )
            except DeploymentError as exc:
                pending = [d for d in self.table.dependents_of(name) if d in order]
                if pending:
                    logger.error(
                        "Aborting %s on %s; not attempted: %s",
                        name, network, ", ".join(pending),
                    )
                raise exc.with_network(network)

        report = RunReport(
            network=network,
            dry_run=not config.persists,
            outcomes=outcomes,
            upgrades=upgrades,
        )
        logger.info(
            "Run %s finished on %s: %d transaction(s)",
            config.run_id, network, report.transactions,
        )
        return report

    def _reconcile(
        self,
        spec: ArtifactSpec,
        record: NetworkRecord,
        engine: DeploymentEngine,
        resolver: ProxyUpgradeResolver,
        config: RunConfig,
        resolved: dict[str, str],
        claimed: dict[str, str],
        outcomes: list[ArtifactOutcome],
        upgrades: list[UpgradePlan],
    ) -> NetworkRecord:
        _, library_addresses = self._library_addresses(spec, resolved)
        forced = config.is_forced(spec.name)

        for target in self.targets_for(spec, resolved):
            _, _, predicted = engine.prepare(target, library_addresses)
            owner = claimed.setdefault(predicted.lower(), target.key)
            if owner != target.key:
                raise DeploymentVerificationFailed(
                    f"'{target.key}' and '{owner}' resolve to the same address {predicted}",
                    artifact=target.key,
                )
            record, outcome = engine.reconcile_artifact(
                target, record, library_addresses, forced=forced
            )
            resolved[outcome.key] = outcome.address
            outcomes.append(outcome)

        if spec.upgradable:
            implementation = outcomes[-2]
            proxy = outcomes[-1]
            plan = resolver.resolve(
                spec.name,
                proxy.address,
                implementation.address,
                implementation_deployed=implementation.verdict != DeployVerdict.SKIP,
                init_data=spec.mutables.encode(),
                sender=spec.sender,
            )
            upgrades.append(plan)
        return record

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict(self, network: str, name: str) -> str:
        """Predicted address of ``name`` given the network's recorded dependencies.

        Nothing is deployed or written.  For an upgradable artifact this is
        the proxy address, which needs no recorded dependency.
        """
        engine = DeploymentEngine(
            self.chain, self.registry, self.source,
            network=network, persist=False, execute=False,
        )
        try:
            spec = self.table.resolve(name)
            if spec.upgradable:
                _, _, predicted = engine.prepare(self._proxy_target(spec), {})
                return predicted
            record = self.registry.load(network)
            resolved: dict[str, str] = {}
            for dep in spec.dependencies:
                address = self.registry.get(record, dep)
                if address is not None:
                    resolved[dep] = address
            _, library_addresses = self._library_addresses(spec, resolved)
            target = self.targets_for(spec, resolved)[-1]
            _, _, predicted = engine.prepare(target, library_addresses)
        except DeploymentError as exc:
            raise exc.with_network(network)
        return predicted
