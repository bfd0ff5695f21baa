# canonical.py
# Deterministic JSON serialization and SHA-256 helpers.
#
# Guarantees: two structurally-equal values serialize to byte-identical output
# regardless of key insertion order. No whitespace is ever emitted.

import hashlib
import json
import math
from pathlib import Path
from typing import Any


class CanonicalizationError(ValueError):
    """Raised when a value has no canonical JSON representation."""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _sort_key(key: str) -> bytes:
    # UTF-16 code unit order, the raw string order JSON producers sort by.
    return key.encode("utf-16-be", "surrogatepass")


def _ecma_float(value: float) -> str:
    """
    Number-to-string the way ECMAScript JSON producers render a double.

    Shortest round-trip digits (repr) placed by the ES Number::toString
    rules: plain notation for exponents in [-6, 21), otherwise d.ddde±n.
    """
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    mantissa, _, exp = repr(abs(value)).partition("e")
    whole, _, frac = mantissa.partition(".")
    digits = whole + frac
    n = len(whole) + (int(exp) if exp else 0)

    stripped = digits.lstrip("0")
    n -= len(digits) - len(stripped)
    digits = stripped.rstrip("0")
    k = len(digits)

    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = digits[:n] + "." + digits[n:]
    elif -6 < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        e = n - 1
        text = digits[0] + ("." + digits[1:] if k > 1 else "") + ("e+" if e >= 0 else "e-") + str(abs(e))
    return sign + text


def _number(value: int | float) -> str:
    if isinstance(value, int):
        if abs(value) < 10**21:
            return str(value)
        try:
            value = float(value)
        except OverflowError as exc:
            raise CanonicalizationError("Integer too large for a JSON number") from exc
    if not math.isfinite(value):
        raise CanonicalizationError(f"Non-finite number has no JSON form: {value!r}")
    return _ecma_float(value)


def _encode(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return json.dumps(value)
    if isinstance(value, (int, float)):
        return _number(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_encode(item) for item in value) + "]"
    if isinstance(value, dict):
        for key in value:
            if not isinstance(key, str):
                raise CanonicalizationError(f"Mapping keys must be strings, got {key!r}")
        pairs = [
            json.dumps(key, ensure_ascii=False) + ":" + _encode(value[key])
            for key in sorted(value, key=_sort_key)
        ]
        return "{" + ",".join(pairs) + "}"
    raise CanonicalizationError(f"Unsupported type for canonical JSON: {type(value).__name__}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def canonical_json(value: Any) -> str:
    """Canonical text form of a JSON-like value."""
    return _encode(value)


def serialize(value: Any) -> bytes:
    """
    Canonical byte form of a JSON-like value.

    Scalars use standard JSON literals, arrays keep element order, mapping keys
    are sorted by raw string value. Raises CanonicalizationError for anything
    that is not null, bool, number, string, list/tuple or str-keyed dict.
    """
    return _encode(value).encode("utf-8")


def sha256_hex(data: bytes | str) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: str | Path) -> str:
    """Lowercase hex digest of the bytes currently on disk at `path`."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def canonical_hash(value: Any) -> str:
    return sha256_hex(serialize(value))
