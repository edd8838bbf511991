"""Agreement identifier derivation."""

from __future__ import annotations

import hashlib
import json


def derive_agreement_id(
    client: str,
    provider: str,
    amount: int,
    sequence: int,
    timestamp_ns: int,
) -> str:
    """SHA-256 of the business fields, the ledger sequence and the time.

    The sequence is strictly increasing per ledger, so identical logical
    inputs never hash to the same id. Returns 0x + 64 hex characters.
    """
    payload = json.dumps(
        [client, provider, str(amount), sequence, timestamp_ns],
        separators=(",", ":"),
    )
    return "0x" + hashlib.sha256(payload.encode()).hexdigest()
