"""Error taxonomy for deployment reconciliation.

Every error carries the artifact name and, once it has crossed the
orchestrator boundary, the network identifier, so an operator can fix the
cause and re-run without re-deploying anything already committed.
None of these are retried by the engine; they abort the network's run.
"""

from __future__ import annotations


class DeploymentError(RuntimeError):
    """Base class for all engine-level failures."""

    def __init__(
        self,
        message: str,
        *,
        artifact: str | None = None,
        network: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.artifact = artifact
        self.network = network

    def with_network(self, network: str) -> DeploymentError:
        """Attach the network identifier (first one wins) and return self."""
        if self.network is None:
            self.network = network
        return self

    def __str__(self) -> str:
        scope = []
        if self.network:
            scope.append(f"network={self.network}")
        if self.artifact:
            scope.append(f"artifact={self.artifact}")
        if scope:
            return f"{self.message} [{', '.join(scope)}]"
        return self.message


class UnknownArtifact(DeploymentError):
    """Raised when a name is not declared in the artifact spec table."""

    def __init__(self, name: str, *, detail: str = "") -> None:
        message = f"Unknown artifact '{name}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, artifact=name)


class CyclicDependency(DeploymentError):
    """Raised when base_deps/base_libs do not form a DAG."""

    def __init__(self, members: list[str]) -> None:
        self.members = list(members)
        super().__init__(
            "Dependency cycle detected: " + " -> ".join(self.members),
            artifact=self.members[0] if self.members else None,
        )


class UnresolvedLibraryMarker(DeploymentError):
    """Raised when a library placeholder is missing before, or left after, linking."""

    def __init__(self, library: str, *, artifact: str | None = None, detail: str = "") -> None:
        self.library = library
        message = f"Unresolved library marker for '{library}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, artifact=artifact)


class MissingLibraryAddress(DeploymentError):
    """Raised when a required dependency has no resolved address yet."""

    def __init__(self, library: str, *, artifact: str | None = None) -> None:
        self.library = library
        super().__init__(
            f"No resolved address for dependency '{library}'",
            artifact=artifact,
        )


class DeploymentVerificationFailed(DeploymentError):
    """Raised when on-chain state does not match what a deployment promised."""


class ArtifactDeploymentFailed(DeploymentError):
    """Raised when the chain client fails while observing or acting."""

    def __init__(self, name: str, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Deployment of '{name}' failed: {cause}", artifact=name)


class ProxyInitializationFailed(DeploymentError):
    """Raised when a proxy initialize/upgrade call reverts."""


class RegistryPersistenceFailed(DeploymentError):
    """Raised when the address registry cannot be read or written durably."""
