"""Error text redaction.

Errors end up on AgentResult records and in logs, so AI provider keys,
Chatwoot access tokens and local paths are stripped before they leave the
adapter that raised them.
"""

from __future__ import annotations

import os
import re
from typing import Iterable, Optional

REDACTED = "[REDACTED]"

# Order matters: the Anthropic key prefix must win over the generic sk- form
_KEY_PATTERNS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"sk-ant-[a-zA-Z0-9_-]+"), "[REDACTED_KEY]"),
    (re.compile(r"sk-[a-zA-Z0-9_-]{20,}"), "[REDACTED_KEY]"),
    (re.compile(r"Bearer\s+\S+"), f"Bearer {REDACTED}"),
    (re.compile(r"(?i)\bx-api-key:\s*\S+"), f"x-api-key: {REDACTED}"),
    (re.compile(r"(?i)\bAuthorization:\s*\S+"), f"Authorization: {REDACTED}"),
)

# Chatwoot sends its token as a header, a JSON field or a query parameter
_CHATWOOT_TOKEN = re.compile(r"""(api_access_token["']?\s*[:=]\s*["']?)[^\s"'&,}]+""", re.IGNORECASE)


def _home_dir() -> Optional[str]:
    home = os.environ.get("USERPROFILE") or os.environ.get("HOME")
    # Replacing "/" would mangle every path in the message
    return home if home and home != "/" else None


def sanitize_error(message: str, secrets: Iterable[Optional[str]] = ()) -> str:
    """Redact credentials and home paths from an error message.

    ``secrets`` are literal values known to the caller, such as the per-inbox
    Chatwoot credential used for the failed request. They are redacted
    wherever they appear, whatever their shape.
    """
    if not message:
        return message

    sanitized = message
    for secret in secrets:
        if secret and len(secret) >= 4:
            sanitized = sanitized.replace(secret, REDACTED)

    for pattern, replacement in _KEY_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    sanitized = _CHATWOOT_TOKEN.sub(rf"\g<1>{REDACTED}", sanitized)

    home = _home_dir()
    if home:
        sanitized = sanitized.replace(home, "[USER_HOME]")

    return sanitized
