"""Cryptographic anchoring of the settlement log."""

from boostpay.crypto.anchor import AnchorRecord, anchor_to_chain, canonical_log_digest

__all__ = ["AnchorRecord", "anchor_to_chain", "canonical_log_digest"]
