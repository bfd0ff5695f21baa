# attestation.py
# Plan attestation: the single hash contract shared by producer and verifier.
#
# The digest is SHA-256 over the canonical serialization of an explicit
# whitelist of plan fields. The attestation sub-object is never part of the
# payload, so a stored hash can never cover itself, and auxiliary top-level
# metadata can be added without invalidating an attested plan.

import copy
import json
from pathlib import Path
from typing import Any, Mapping

from plan_sandbox.canonical import canonical_hash
from plan_sandbox.loader import read_plan_document

HASH_CONTRACT = "plan-hash/v1"
HASH_FIELDS: tuple[str, ...] = (
    "plan_id",
    "skill_id",
    "skill_version",
    "inputs",
    "constraints",
    "steps",
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class AttestationError(Exception):
    """Base for every reason a plan cannot be trusted. Always fatal."""


class MissingAttestationError(AttestationError):
    """Raised when the plan carries no attestation.plan_hash."""


class UnsupportedContractError(AttestationError):
    """Raised when the plan was attested under an unknown field contract."""


class PlanWriteError(Exception):
    """Raised when an attested plan cannot be written back to disk."""


class HashMismatchError(AttestationError):
    """Raised when the recomputed digest differs from the stored one."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Plan hash mismatch: expected={expected} actual={actual}")


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


def hash_payload(plan: Mapping[str, Any]) -> dict[str, Any]:
    """Whitelisted fields only. Absent fields are omitted, never nulled."""
    return {name: plan[name] for name in HASH_FIELDS if name in plan}


def compute_expected_hash(plan: Mapping[str, Any]) -> str:
    """Lowercase hex SHA-256 of the plan's canonical hash payload."""
    return canonical_hash(hash_payload(plan))


def stored_hash(plan: Mapping[str, Any]) -> str | None:
    attestation = plan.get("attestation")
    if not isinstance(attestation, Mapping):
        return None
    value = attestation.get("plan_hash")
    if not isinstance(value, str) or not value:
        return None
    return value


def verify(plan: Mapping[str, Any]) -> str:
    """
    Hard gate. Returns the verified digest on success.

    Raises MissingAttestationError when no hash is stored, and
    HashMismatchError (carrying both digests) when the stored hash does not
    match, case-insensitively. Callers must not execute anything from the
    plan after a failure.
    """
    actual = stored_hash(plan)
    if actual is None:
        raise MissingAttestationError("Missing plan_hash in attestation")

    contract = plan["attestation"].get("contract")
    if contract is not None and contract != HASH_CONTRACT:
        raise UnsupportedContractError(
            f"Plan attested under contract {contract!r}; this runner verifies {HASH_CONTRACT!r}"
        )

    expected = compute_expected_hash(plan)
    if actual.lower() != expected:
        raise HashMismatchError(expected=expected, actual=actual)
    return expected


# ---------------------------------------------------------------------------
# Attestation writing
# ---------------------------------------------------------------------------


def attest(plan: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of `plan` with attestation.plan_hash set."""
    attested = copy.deepcopy(dict(plan))
    existing = attested.get("attestation")
    attestation = existing if isinstance(existing, dict) else {}
    attestation["plan_hash"] = compute_expected_hash(plan)
    attestation["contract"] = HASH_CONTRACT
    attested["attestation"] = attestation
    return attested


def attest_plan_file(path: str | Path) -> str:
    """Sign off a plan file in place and return the digest written."""
    path = Path(path)
    attested = attest(read_plan_document(path))
    try:
        path.write_text(json.dumps(attested, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    except OSError as exc:
        raise PlanWriteError(f"Cannot write attested plan {path}: {exc}") from exc
    return attested["attestation"]["plan_hash"]
