"""deployforge: deterministic, idempotent multi-network contract deployment.

  - CREATE2 singleton deployments at predictable addresses
  - Library linking by placeholder substitution
  - Per-network address registry with runtime code hashes
  - Observe/decide/act/commit engine: re-runs send no transaction
  - Upgradeable proxies retargeted only when their implementation moved
"""

__version__ = "0.1.0"
__description__ = "Deterministic, idempotent multi-network contract deployment"

from deployforge.core.orchestrator import Orchestrator
from deployforge.core.spec_table import ArtifactSpecTable
from deployforge.core.registry import AddressRegistry

__all__ = ["Orchestrator", "ArtifactSpecTable", "AddressRegistry", "__version__"]
