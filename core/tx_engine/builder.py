"""Transaction builder responsible for signing and dispatching bridge transactions.

Module purpose and system role:
- Turn a :class:`TransactionDescriptor` produced by the bridge API into a
  signed EIP-1559 (or legacy) transaction and broadcast it.
- Block until the transaction is included, failing on a reverted receipt.
- Emits one JSON line per outcome to the transaction log.

Integration points and dependencies:
- Relies on a ``web3.Web3``-like object for nonce, fee data, broadcast and
  receipt polling. Tests pass small stand-ins with the same shape.
- Signs locally with an ``eth_account`` account; keys never leave the process.

The descriptor is trusted as-is: no gas estimation and no balance check is
done before broadcasting.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

from eth_account.signers.local import LocalAccount
from hexbytes import HexBytes
from web3 import Web3

from core.errors import SubmissionFailed
from core.logger import log_error, make_json_safe


def _to_int(value: Any) -> int:
    """Parse ints, decimal strings and ``0x`` hex strings."""

    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(text)
    if isinstance(value, Mapping) and "hex" in value:
        # ethers BigNumber JSON form
        return int(str(value["hex"]), 16)
    raise ValueError(f"not an integer: {value!r}")


@dataclass(frozen=True)
class TransactionDescriptor:
    """Unsigned transaction exactly as returned by the build endpoint."""

    to: str
    sender: str
    value: int
    data: str
    gas_limit: int
    chain_id: int

    @classmethod
    def from_build_response(cls, body: Mapping[str, Any]) -> "TransactionDescriptor":
        return cls(
            to=str(body["to"]),
            sender=str(body["from"]),
            value=_to_int(body["value"]),
            data=str(body["data"]),
            gas_limit=_to_int(body["gasLimit"]),
            chain_id=_to_int(body["chainId"]),
        )

    def to_tx_params(self) -> Dict[str, Any]:
        return {
            "to": Web3.to_checksum_address(self.to),
            "value": self.value,
            "data": self.data,
            "gas": self.gas_limit,
            "chainId": self.chain_id,
        }


class TransactionBuilder:
    """Signs, sends and confirms transactions on one network."""

    def __init__(
        self,
        web3: Any,
        network: str,
        *,
        receipt_timeout: float = 600,
        poll_latency: float = 2,
        log_path: str | Path | None = None,
    ) -> None:
        """Create a new builder.

        Parameters
        ----------
        web3:
            Web3-like object used for RPC calls.
        network:
            Logical network name, used in logs and errors.
        receipt_timeout:
            Seconds to wait for inclusion before giving up.
        log_path:
            Optional log file path. Defaults to ``$TX_LOG_FILE`` or ``logs/tx_log.json``.
        """

        self.web3 = web3
        self.network = network
        self.receipt_timeout = receipt_timeout
        self.poll_latency = poll_latency
        if log_path is None:
            log_path = os.getenv("TX_LOG_FILE", "logs/tx_log.json")
        self.log_file = Path(log_path)
        self.log_file.parent.mkdir(parents=True, exist_ok=True)

    def _log(self, entry: dict) -> None:
        """Append ``entry`` as a JSON line to the transaction log."""

        entry = {"network": self.network, **entry}
        with self.log_file.open("a") as fh:
            fh.write(json.dumps(make_json_safe(entry)) + "\n")
        if entry.get("error"):
            log_error(
                "TransactionBuilder",
                str(entry["error"]),
                event=entry.get("status", "log"),
                network=self.network,
                tx_hash=entry.get("tx_hash") or "",
            )

    def fee_fields(self) -> Dict[str, int]:
        """Return EIP-1559 fee fields, or ``gasPrice`` on pre-London chains."""

        block = self.web3.eth.get_block("latest")
        base_fee = block.get("baseFeePerGas")
        if base_fee is None:
            return {"gasPrice": int(self.web3.eth.gas_price)}
        priority = int(self.web3.eth.max_priority_fee)
        return {
            "maxPriorityFeePerGas": priority,
            "maxFeePerGas": int(base_fee) * 2 + priority,
        }

    def send_transaction(self, account: LocalAccount, descriptor: TransactionDescriptor) -> str:
        """Sign and send ``descriptor`` from ``account``; return the tx hash once confirmed."""

        address = account.address
        if descriptor.sender.lower() != address.lower():
            err = f"descriptor sender {descriptor.sender} does not match signer {address}"
            self._log({"from_address": address, "tx_hash": None, "status": "send_failed", "error": err})
            raise SubmissionFailed(self.network, err)

        try:
            tx = descriptor.to_tx_params()
            tx["nonce"] = self.web3.eth.get_transaction_count(address, "pending")
            tx.update(self.fee_fields())
            signed = account.sign_transaction(tx)
            tx_hash = Web3.to_hex(HexBytes(self.web3.eth.send_raw_transaction(signed.raw_transaction)))
        except Exception as exc:
            self._log({"from_address": address, "tx_hash": None, "status": "send_failed", "error": str(exc)})
            raise SubmissionFailed(self.network, str(exc)) from exc

        self._log(
            {
                "from_address": address,
                "tx_hash": tx_hash,
                "nonce": tx["nonce"],
                "gas_limit": descriptor.gas_limit,
                "value": descriptor.value,
                "status": "sent",
                "error": None,
            }
        )

        try:
            receipt = self.web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout, poll_latency=self.poll_latency
            )
        except Exception as exc:
            self._log({"from_address": address, "tx_hash": tx_hash, "status": "send_failed", "error": str(exc)})
            raise SubmissionFailed(self.network, str(exc), tx_hash) from exc

        if receipt.get("status") == 0:
            err = f"transaction {tx_hash} reverted"
            self._log(
                {
                    "from_address": address,
                    "tx_hash": tx_hash,
                    "block": receipt.get("blockNumber"),
                    "status": "reverted",
                    "error": err,
                }
            )
            raise SubmissionFailed(self.network, err, tx_hash)

        self._log(
            {
                "from_address": address,
                "tx_hash": tx_hash,
                "block": receipt.get("blockNumber"),
                "gas_used": receipt.get("gasUsed"),
                "status": "confirmed",
                "error": None,
            }
        )
        return tx_hash
