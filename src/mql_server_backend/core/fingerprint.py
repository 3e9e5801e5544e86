"""
Deterministic cache keys for query specifications.

A fingerprint is a SHA-256 digest over the canonical JSON rendering of every
field that changes a query's result: model key, metrics, group-by set,
normalized constraints, order, limit, time-series flag and post-processors.
The cache mode is deliberately left out: it governs how the cache is used,
not what the query computes.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict

from ..models.query_schema import QuerySpecification
from .constraints import normalize, to_canonical_dict

FINGERPRINT_VERSION = 1


@dataclass(frozen=True)
class QueryFingerprint:
    """
    Immutable fingerprint of a query specification.

    Attributes:
        checksum: Hex digest used as the cache key
        canonical: The canonical mapping the digest was computed from
    """

    checksum: str
    canonical: Dict[str, Any]

    def __post_init__(self) -> None:
        if not self.checksum or len(self.checksum) < 16:
            raise ValueError("Checksum must be a hex digest")

    def __hash__(self) -> int:
        return hash(self.checksum)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryFingerprint):
            return NotImplemented
        return self.checksum == other.checksum

    def __str__(self) -> str:
        return self.checksum


def canonical_specification(spec: QuerySpecification) -> Dict[str, Any]:
    """
    Build the canonical mapping of a specification.

    Raises:
        ConstraintValidationError: If the where clause is malformed
    """
    where = to_canonical_dict(normalize(spec.where)) if spec.where is not None else None
    return {
        "version": FINGERPRINT_VERSION,
        "model_key": spec.model_key.to_dict(),
        "metrics": list(spec.metrics),
        "group_by": sorted(set(spec.group_by)),
        "where": where,
        "order": list(spec.order),
        "limit": spec.limit,
        "add_time_series": bool(spec.add_time_series),
        "post_processors": list(spec.post_processors),
    }


def compute_fingerprint(spec: QuerySpecification) -> QueryFingerprint:
    """Derive the fingerprint of a specification."""
    canonical = canonical_specification(spec)
    payload = json.dumps(canonical, sort_keys=True, separators=(",", ":"), default=str)
    checksum = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return QueryFingerprint(checksum=checksum, canonical=canonical)
