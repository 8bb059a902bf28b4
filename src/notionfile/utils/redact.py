"""Token / payload redaction for safe logging.

Anything the transports log (headers, text bodies, URLs) goes through this
module first:

* **Authorization headers** and other sensitive keys are replaced with a
  masked placeholder that shows only the last four characters of the token.
* **Bearer tokens** embedded in free text are replaced with ``<redacted>``.
* **Binary values** (``bytes``, streams) are replaced with a size marker.
* The full token is never present in the output.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

# If any of these appear in a key name (case-insensitive), the value is
# redacted.
_SENSITIVE_KEY_PATTERNS: frozenset[str] = frozenset({
    "token",
    "secret",
    "password",
    "credential",
    "authorization",
    "cookie",
    "api_key",
    "api-key",
})

_BEARER_RE = re.compile(r"(Bearer\s+)\S+")


def _mask_token(value: str, token: str | None) -> str:
    """Replace bearer / token strings with a safe placeholder."""
    if token and token in value:
        suffix = token[-4:] if len(token) >= 4 else "****"
        placeholder = f"<redacted:...{suffix}>"
        if token in placeholder:
            placeholder = "<***>"
        value = value.replace(token, placeholder)
    return _BEARER_RE.sub(lambda m: f"{m.group(1)}<redacted>", value)


def redact_text(text: str, token: str | None = None) -> str:
    """Return *text* with *token* and any bearer credential masked."""
    return _mask_token(text, token)


def _redact_value(value: Any, token: str | None) -> Any:
    if isinstance(value, Mapping):
        return redact(value, token)
    if isinstance(value, (list, tuple)):
        return [_redact_value(item, token) for item in value]
    if isinstance(value, str):
        return _mask_token(value, token)
    if isinstance(value, (bytes, bytearray)):
        return f"<binary:{len(value)}_bytes>"
    if hasattr(value, "read"):
        return "<stream>"
    return value


def redact(payload: Mapping[str, Any], token: str | None = None) -> dict[str, Any]:
    """Return a copy of *payload* with sensitive data redacted.

    Parameters
    ----------
    payload:
        Headers, a JSON body, or multipart form data.  Never mutated.
    token:
        The integration token.  Any occurrence of it is scrubbed.

    Examples
    --------
    >>> redact({"Authorization": "Bearer ntn_abc123"})
    {'Authorization': 'Bearer <redacted>'}
    """
    result: dict[str, Any] = {}
    for key, value in payload.items():
        key_lower = key.lower() if isinstance(key, str) else ""
        if any(pat in key_lower for pat in _SENSITIVE_KEY_PATTERNS):
            result[key] = _mask_token(value, token) if isinstance(value, str) else "<redacted>"
        else:
            result[key] = _redact_value(value, token)
    return result
