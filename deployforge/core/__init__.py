"""deployforge core: spec table, registry, linker, CREATE2 and the engine.

Modules
-------
spec_table
    ``ArtifactSpecTable``: declarations and dependency ordering.
registry
    ``AddressRegistry``: per-network JSON address records.
linker
    Library placeholder substitution.
create2
    Deterministic address calculation.
engine
    ``DeploymentEngine``: observe, decide, act and commit one target.
proxy_resolver
    ``ProxyUpgradeResolver``: retargets upgradeable proxies.
orchestrator
    ``Orchestrator``: reconciles a whole network.
"""
