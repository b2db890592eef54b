"""Artifact declaration models: what can be deployed and how it is built.

``ArtifactSpec`` accepts both the snake_case field names and the camelCase
keys used by JSON spec tables (``baseDeps``, ``baseLibs``, ``vanity``,
``from``), so existing per-network settings files load unchanged.
"""

from __future__ import annotations

from typing import Any

from eth_abi import encode
from eth_abi.grammar import ABIType, TupleType, parse
from eth_utils import to_checksum_address
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

_MAX_SEED = 2**256 - 1


def _coerce_value(abi_type: ABIType, value: Any) -> Any:
    """Convert JSON-friendly values into what ``eth_abi`` expects."""
    if abi_type.is_array:
        return [_coerce_value(abi_type.item_type, item) for item in value]
    if isinstance(abi_type, TupleType):
        return tuple(
            _coerce_value(component, item)
            for component, item in zip(abi_type.components, value)
        )
    base = abi_type.base
    if base in ("uint", "int") and isinstance(value, str):
        return int(value, 0)
    if base == "bytes" and isinstance(value, str):
        return bytes.fromhex(value.removeprefix("0x"))
    if base == "address" and isinstance(value, str):
        return to_checksum_address(value)
    return value


class AbiArgs(BaseModel):
    """An ABI type list with matching values (constructor or initializer args)."""

    model_config = ConfigDict(frozen=True)

    types: list[str] = []
    values: list[Any] = []

    @field_validator("types")
    @classmethod
    def _strip_whitespace(cls, types: list[str]) -> list[str]:
        return [t.replace(" ", "") for t in types]

    @model_validator(mode="after")
    def _check_arity(self) -> AbiArgs:
        if len(self.types) != len(self.values):
            raise ValueError(
                f"ABI arity mismatch: {len(self.types)} types, {len(self.values)} values"
            )
        return self

    def extend(self, types: list[str], values: list[Any]) -> AbiArgs:
        """Return a new AbiArgs with extra trailing arguments."""
        return AbiArgs(types=[*self.types, *types], values=[*self.values, *values])

    def encode(self) -> bytes:
        """ABI-encode the arguments as one tuple; empty args encode to ``b""``."""
        if not self.types:
            return b""
        parsed = [parse(t) for t in self.types]
        values = [_coerce_value(t, v) for t, v in zip(parsed, self.values)]
        return encode(self.types, values)


class ArtifactSpec(BaseModel):
    """Static declaration of one deployable unit.

    ``base_deps`` are contracts this one is built atop: their resolved
    addresses are appended to the constructor arguments.  ``base_libs`` are
    libraries linked into the bytecode.  Together they must form a DAG.

    An ``upgradable`` artifact is fronted by a proxy: the proxy is recorded
    under ``name`` and the logic contract under ``contract``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    contract: str = ""
    base_deps: list[str] = Field(
        default=[], validation_alias=AliasChoices("base_deps", "baseDeps")
    )
    base_libs: list[str] = Field(
        default=[], validation_alias=AliasChoices("base_libs", "baseLibs")
    )
    immutables: AbiArgs = AbiArgs()
    mutables: AbiArgs = AbiArgs()
    vanity_seed: int | None = Field(
        default=None, validation_alias=AliasChoices("vanity_seed", "vanity")
    )
    upgradable: bool = False
    sender: str | None = Field(
        default=None, validation_alias=AliasChoices("sender", "from")
    )

    @model_validator(mode="before")
    @classmethod
    def _default_contract(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("contract"):
            data = {**data, "contract": data.get("name", "")}
        return data

    @model_validator(mode="after")
    def _check_invariants(self) -> ArtifactSpec:
        if not self.name:
            raise ValueError("artifact name must not be empty")
        if self.upgradable and self.contract == self.name:
            raise ValueError(
                f"upgradable artifact '{self.name}' needs a distinct implementation contract"
            )
        if self.vanity_seed is not None and not 0 <= self.vanity_seed <= _MAX_SEED:
            raise ValueError(f"vanity seed out of range for '{self.name}'")
        return self

    @property
    def dependencies(self) -> list[str]:
        """base_deps followed by base_libs, duplicates removed, order kept."""
        return list(dict.fromkeys([*self.base_deps, *self.base_libs]))

    def constructor_args(self, dependency_addresses: list[str]) -> AbiArgs:
        """Immutables, then one address per base dependency.

        Non-upgradable artifacts take their mutables as trailing constructor
        arguments; upgradable ones receive them through the proxy instead.
        """
        args = self.immutables.extend(
            ["address"] * len(dependency_addresses), list(dependency_addresses)
        )
        if not self.upgradable:
            args = args.extend(list(self.mutables.types), list(self.mutables.values))
        return args


class DeploymentTarget(BaseModel):
    """A concrete unit handed to the decision engine.

    ``key`` is the registry entry it reconciles; ``contract`` names the
    compiled bytecode; ``libraries`` are the contract names of libraries
    that must be linked in.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    contract: str
    libraries: list[str] = []
    constructor_args: AbiArgs = AbiArgs()
    vanity_seed: int | None = None
    sender: str | None = None


class LinkedBytecode(BaseModel):
    """Creation bytecode with every library placeholder substituted."""

    model_config = ConfigDict(frozen=True)

    contract: str
    code: str  # 0x-prefixed hex
    libraries: dict[str, str] = {}

    def to_bytes(self) -> bytes:
        return bytes.fromhex(self.code.removeprefix("0x"))
