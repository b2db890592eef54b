"""``ChainClient`` implementation over web3.py and a CREATE2 factory contract.

The factory is expected to expose ``deploy(bytes initCode, bytes32 salt)
returns (address)``, the interface shared by most singleton deployers.

Reads (code, calls, nonces, simulations, gas estimates and transaction
builds) are retried with exponential backoff and jitter on transient
transport errors.  Signed transactions are sent once; waiting for their
receipt is bounded by the confirmation timeout.  Every transport or node
error leaves the client as ``ChainClientError``.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from eth_utils import to_checksum_address
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from deployforge.chain.client import ChainClientError, DeploymentReceipt, TransactionReceipt

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount

    from deployforge.config import ForgeSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

FACTORY_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "deploy",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "initCode", "type": "bytes"},
            {"name": "salt", "type": "bytes32"},
        ],
        "outputs": [{"name": "", "type": "address"}],
    },
]


class Web3ChainClient:
    """Blocking chain client for one network.

    Parameters
    ----------
    w3:
        Connected ``Web3`` instance.
    factory_address:
        CREATE2 deployer contract.
    private_keys:
        Signing keys; the first one is the default sender.
    confirmation_timeout:
        Seconds to wait for a receipt before giving up.
    max_retries:
        Extra attempts for transient read failures.
    backoff_base:
        Base delay (seconds) of the exponential backoff.
    gas_limit:
        Fixed gas limit, or ``None`` to estimate per transaction.
    """

    def __init__(
        self,
        w3: Web3,
        factory_address: str,
        private_keys: list[str],
        *,
        confirmation_timeout: float = 180.0,
        max_retries: int = 3,
        backoff_base: float = 0.5,
        gas_limit: int | None = None,
    ) -> None:
        if not private_keys:
            raise ValueError("at least one private key is required")
        self._w3 = w3
        self._factory_address = to_checksum_address(factory_address)
        self._factory = w3.eth.contract(address=self._factory_address, abi=FACTORY_ABI)
        self._accounts: dict[str, LocalAccount] = {}
        for key in private_keys:
            account = w3.eth.account.from_key(key)
            self._accounts[account.address] = account
        self._default_sender = next(iter(self._accounts))
        self._confirmation_timeout = float(confirmation_timeout)
        self._max_retries = int(max_retries)
        self._backoff_base = float(backoff_base)
        self._gas_limit = gas_limit

    @classmethod
    def from_settings(cls, settings: ForgeSettings) -> Web3ChainClient:
        """Build a client from ``DEPLOYFORGE_*`` settings, validating them first."""
        if not settings.rpc_url:
            raise ValueError("missing RPC URL (set DEPLOYFORGE_RPC_URL)")
        if not settings.private_key:
            raise ValueError("missing private key (set DEPLOYFORGE_PRIVATE_KEY)")
        if not settings.factory_address:
            raise ValueError("missing factory address (set DEPLOYFORGE_FACTORY_ADDRESS)")
        w3 = Web3(
            Web3.HTTPProvider(
                settings.rpc_url,
                request_kwargs={"timeout": settings.rpc_timeout_seconds},
            )
        )
        return cls(
            w3,
            settings.factory_address,
            [settings.private_key],
            confirmation_timeout=settings.confirmation_timeout_seconds,
            max_retries=settings.rpc_max_retries,
            backoff_base=settings.rpc_backoff_seconds,
            gas_limit=settings.gas_limit,
        )

    # ------------------------------------------------------------------
    # Retry plumbing
    # ------------------------------------------------------------------

    def _with_retries(self, what: str, fn: Callable[[], T]) -> T:
        last_err: BaseException | None = None
        for attempt in range(self._max_retries + 1):
            try:
                return fn()
            except OSError as exc:  # connection resets, read timeouts
                last_err = exc
            except Web3Exception as exc:
                raise ChainClientError(f"{what} failed: {exc}") from exc
            if attempt < self._max_retries:
                sleep_s = self._backoff_base * (2**attempt) + random.random() * 0.25
                logger.warning(
                    "%s failed (%s), retrying in %.2fs [%d/%d]",
                    what, last_err, sleep_s, attempt + 1, self._max_retries,
                )
                time.sleep(sleep_s)
        raise ChainClientError(f"{what} failed after retries: {last_err}") from last_err

    def _account(self, sender: str | None) -> LocalAccount:
        address = to_checksum_address(sender) if sender else self._default_sender
        try:
            return self._accounts[address]
        except KeyError:
            raise ChainClientError(f"no signing key loaded for sender {address}") from None

    def _submit(self, account: LocalAccount, tx: dict[str, Any]) -> tuple[str, int]:
        """Sign, send and wait; returns (tx hash, receipt status)."""
        try:
            signed = account.sign_transaction(tx)
        except (TypeError, ValueError) as exc:
            raise ChainClientError(f"cannot sign transaction: {exc}") from exc
        try:
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
        except (OSError, Web3Exception) as exc:
            raise ChainClientError(f"transaction submission failed: {exc}") from exc
        hex_hash = Web3.to_hex(tx_hash)
        logger.info("Submitted transaction %s", hex_hash)
        try:
            receipt = self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._confirmation_timeout
            )
        except TimeExhausted as exc:
            raise ChainClientError(
                f"transaction {hex_hash} not confirmed within {self._confirmation_timeout}s"
            ) from exc
        except (OSError, Web3Exception) as exc:
            raise ChainClientError(f"waiting for {hex_hash} failed: {exc}") from exc
        return hex_hash, int(receipt["status"])

    def _base_tx(self, account: LocalAccount) -> dict[str, Any]:
        tx: dict[str, Any] = {
            "from": account.address,
            "nonce": self._with_retries(
                "nonce lookup",
                lambda: self._w3.eth.get_transaction_count(account.address, "pending"),
            ),
            "chainId": self._with_retries("chain id lookup", lambda: self._w3.eth.chain_id),
        }
        if self._gas_limit:
            tx["gas"] = self._gas_limit
        return tx

    # ------------------------------------------------------------------
    # ChainClient
    # ------------------------------------------------------------------

    @property
    def factory_address(self) -> str:
        return self._factory_address

    def get_code(self, address: str) -> bytes:
        checksummed = to_checksum_address(address)
        return bytes(
            self._with_retries("get_code", lambda: self._w3.eth.get_code(checksummed))
        )

    def send_deployment(
        self, init_code: bytes, salt: bytes, *, sender: str | None = None
    ) -> DeploymentReceipt:
        account = self._account(sender)
        fn = self._factory.functions.deploy(init_code, salt)
        try:
            expected = self._with_retries(
                "deployment simulation", lambda: fn.call({"from": account.address})
            )
        except ChainClientError as exc:
            raise ChainClientError(f"deployment would revert: {exc}") from exc
        base = self._base_tx(account)
        # build_transaction estimates gas and fees over RPC
        tx = self._with_retries("deployment transaction build", lambda: fn.build_transaction(base))
        tx_hash, status = self._submit(account, tx)
        if status != 1:
            raise ChainClientError(f"deployment transaction {tx_hash} reverted")
        return DeploymentReceipt(
            transaction_hash=tx_hash,
            address=to_checksum_address(expected),
            confirmed=True,
        )

    def call(self, address: str, data: bytes) -> bytes:
        request = {"to": to_checksum_address(address), "data": Web3.to_hex(data)}
        return bytes(self._with_retries("eth_call", lambda: self._w3.eth.call(request)))

    def transact(
        self, address: str, data: bytes, *, sender: str | None = None
    ) -> TransactionReceipt:
        account = self._account(sender)
        tx = self._base_tx(account)
        tx.update({"to": to_checksum_address(address), "data": Web3.to_hex(data)})
        if "gas" not in tx:
            try:
                tx["gas"] = self._with_retries(
                    "gas estimation", lambda: self._w3.eth.estimate_gas(tx)
                )
            except ChainClientError as exc:
                if not isinstance(exc.__cause__, ContractLogicError):
                    raise
                logger.warning("Call to %s would revert: %s", address, exc.__cause__)
                return TransactionReceipt(transaction_hash="", status=0)
        fees = self._with_retries("fee lookup", lambda: self._w3.eth.gas_price)
        tx.setdefault("gasPrice", fees)
        tx_hash, status = self._submit(account, tx)
        return TransactionReceipt(transaction_hash=tx_hash, status=status)
