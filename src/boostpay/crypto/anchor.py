"""Log anchoring — embeds the settlement log digest on Ethereum.

The settlement log is hash-verified line by line, but an operator who
controls the file could still rewrite it wholesale. Anchoring the digest
in a blockchain transaction fixes the log's contents at a point in time:
anyone holding the file can recompute the digest and compare it with
the transaction data.

No code executes on-chain. The transaction is a 0-value self-send whose
data field carries the digest.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone

from boostpay.persistence.event_log import EventKind, EventLog

SEPOLIA_CHAIN_ID = 11155111


@dataclass(frozen=True)
class AnchorRecord:
    """A record of a successful blockchain anchor."""
    sha256_hash: str
    tx_hash: str
    block_number: int
    chain_id: int
    timestamp_utc: str
    explorer_url: str
    events_covered: int


def canonical_log_digest(event_log: EventLog) -> tuple[str, int]:
    """Digest the settlement log.

    Hashes the ordered event hashes, skipping prior LOG_ANCHORED events
    so re-anchoring an unchanged log yields the same digest.

    Returns:
        Tuple of (hex digest, number of events covered).
    """
    hashes = [
        e.event_hash for e in event_log.events()
        if e.event_kind != EventKind.LOG_ANCHORED
    ]
    h = hashlib.sha256()
    for event_hash in hashes:
        h.update(event_hash.encode("utf-8"))
        h.update(b"\n")
    return h.hexdigest(), len(hashes)


def anchor_to_chain(
    digest: str,
    events_covered: int,
    rpc_url: str,
    private_key: str,
    chain_id: int = SEPOLIA_CHAIN_ID,
    gas: int = 30_000,
    gas_price_gwei: str = "2",
    explorer_base: str = "https://sepolia.etherscan.io/tx/",
) -> AnchorRecord:
    """Anchor a SHA-256 digest by embedding it in a transaction.

    Sends a 0-ETH self-send with the digest in the data field and waits
    for one confirmation.
    """
    from web3 import Web3, HTTPProvider
    from eth_account import Account

    w3 = Web3(HTTPProvider(rpc_url))
    acct = Account.from_key(private_key)

    nonce = w3.eth.get_transaction_count(acct.address)
    tx = {
        "to": acct.address,
        "value": 0,
        "gas": gas,
        "gasPrice": w3.to_wei(gas_price_gwei, "gwei"),
        "nonce": nonce,
        "chainId": chain_id,
        "data": bytes.fromhex(digest),
    }

    signed = acct.sign_transaction(tx)
    tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=300)

    return AnchorRecord(
        sha256_hash=digest,
        tx_hash=tx_hash.hex(),
        block_number=receipt.blockNumber,
        chain_id=chain_id,
        timestamp_utc=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        explorer_url=f"{explorer_base}{tx_hash.hex()}",
        events_covered=events_covered,
    )
