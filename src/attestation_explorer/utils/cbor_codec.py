"""
CBOR codec for persisted proofs.

Risk values and other attested fields are uint256, which JSON tooling outside
Python truncates. CBOR encodes them as bignums, and the payload is stored as
hex text so it fits a string key/value store.
"""

import codecs
import logging
from typing import Any

import cbor2

from ..errors import DecodeError
from ..models import CorrelatedRecord

logger = logging.getLogger(__name__)


class ProofCodec:
    """Encodes proof collections to hex CBOR and back."""

    FORMAT_VERSION = 1

    def encode(self, proofs: list[CorrelatedRecord]) -> str:
        payload = {
            "version": self.FORMAT_VERSION,
            "proofs": [proof.to_dict() for proof in proofs],
        }
        return cbor2.dumps(payload).hex()

    def decode(self, response_hex: str) -> list[CorrelatedRecord]:
        """
        Decode a hex CBOR payload into proofs.

        Args:
            response_hex: Hex text produced by ``encode``

        Returns:
            The decoded proofs

        Raises:
            DecodeError: If the payload is not valid hex CBOR of the expected shape
        """
        try:
            data_bytes = codecs.decode(response_hex, "hex")
            payload: Any = cbor2.loads(data_bytes)
        except (ValueError, TypeError, cbor2.CBORDecodeError) as e:
            raise DecodeError(f"CBOR decode error: {e}") from e

        if not isinstance(payload, dict) or "proofs" not in payload:
            raise DecodeError(f"Unexpected proof payload: {type(payload).__name__}")

        version = payload.get("version")
        if version != self.FORMAT_VERSION:
            raise DecodeError(f"Unsupported proof payload version: {version}")

        try:
            return [CorrelatedRecord.from_dict(item) for item in payload["proofs"]]
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Malformed proof entry: {e}") from e
