"""Shared request-field checks."""

import re

_WALLET_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_wallet_address(value) -> bool:
    """True for ``0x`` followed by exactly 40 hex characters."""
    return isinstance(value, str) and _WALLET_RE.fullmatch(value) is not None
