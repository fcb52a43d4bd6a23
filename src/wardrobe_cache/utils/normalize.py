"""Value normalisation and short hashing for cache fingerprints.

Every signal that feeds a cache key goes through these helpers so that
structurally equal inputs hash identically regardless of key insertion
order, string casing or surrounding whitespace.
"""

import hashlib
import json
from typing import Any

from wardrobe_cache.exceptions import MalformedFingerprintError


def normalize_value(value: Any) -> str:
    """Normalize a single context value to a string.

    Strings are lower-cased and trimmed, numbers and booleans are
    stringified, anything else is serialized as canonical JSON.

    Raises:
        MalformedFingerprintError: If the value is not JSON-serializable
    """
    if isinstance(value, str):
        return value.lower().strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)

    try:
        return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise MalformedFingerprintError(
            f"Cannot normalize value of type {type(value).__name__}: {e}"
        ) from e


def normalize_array(values: Any) -> str:
    """Normalize a list of values to a sorted, comma-joined string.

    Non-list input yields an empty string.
    """
    if not isinstance(values, (list, tuple)):
        return ""
    return ",".join(sorted(normalize_value(v) for v in values))


def short_hash(text: str, length: int, algorithm: str = "md5") -> str:
    """Hex digest of ``text`` truncated to ``length`` characters."""
    return hashlib.new(algorithm, text.encode("utf-8")).hexdigest()[:length]


def hash_object(obj: dict[str, Any], length: int = 8, algorithm: str = "md5") -> str:
    """Hash a flat signal object with sorted keys.

    ``None`` values are dropped before hashing. An empty object hashes to
    the empty string, which marks the signal group as absent.
    """
    present = {k: v for k, v in obj.items() if v is not None}
    if not present:
        return ""

    try:
        payload = json.dumps(present, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise MalformedFingerprintError(f"Cannot hash signal object: {e}") from e

    return short_hash(payload, length, algorithm)
