# ==============================
# Address Resolution
# ==============================
"""
Dotted-path address resolution against a root data object.

Supports:
- Dotted names: "Record.message"
- Integer indexes: "Context[0].OtherData"
- Quoted keys: 'Record["first name"]', "AppData['x']"
- Unquoted bracket keys: "Bundle[theme]" (all-digit keys become indexes)

Lookup per step:
- Mapping -> key
- list/tuple -> non-negative in-range index
- anything else -> public attribute

Misses resolve to UNDEFINED; nothing here raises for data-shape problems.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, List, Optional, Union

from pict_template.contracts.template_schema import UNDEFINED, is_undefined


logger = logging.getLogger(__name__)

Step = Union[str, int]

_NAME_RE = re.compile(r"[^.\[\]]+")


# ==============================
# Parsing
# ==============================
def parse_address(address: str) -> Optional[List[Step]]:
    """
    Split an address into lookup steps.
    Returns None when the address is malformed (unbalanced brackets, empty segments).
    """
    steps: List[Step] = []
    i = 0
    n = len(address)
    expect_name = True
    while i < n:
        ch = address[i]
        if ch == "[":
            close = _find_close(address, i)
            if close < 0:
                return None
            steps.append(_bracket_step(address[i + 1 : close].strip()))
            i = close + 1
            expect_name = False
        elif ch == ".":
            if expect_name:
                return None
            i += 1
            expect_name = True
            if i >= n:
                return None
        else:
            match = _NAME_RE.match(address, i)
            if match is None or not expect_name:
                return None
            steps.append(match.group(0).strip())
            i = match.end()
            expect_name = False
    return steps or None


def _find_close(address: str, start: int) -> int:
    quote = address[start + 1] if start + 1 < len(address) and address[start + 1] in "\"'" else None
    if quote is None:
        return address.find("]", start + 1)
    end_quote = address.find(quote, start + 2)
    if end_quote < 0:
        return -1
    close = end_quote + 1
    return close if close < len(address) and address[close] == "]" else -1


def _bracket_step(raw: str) -> Step:
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "\"'":
        return raw[1:-1]
    if raw.isdigit():
        return int(raw)
    return raw


# ==============================
# Resolver
# ==============================
class AddressResolver:
    """
    Resolves addresses against a root data object.

    The host exposes one instance as `manifest`; providers only call
    get_value_by_hash(root, address).
    """

    def get_value_by_hash(self, root: Any, address: Any) -> Any:
        if not isinstance(address, str) or not address.strip():
            return UNDEFINED
        steps = parse_address(address.strip())
        if steps is None:
            logger.debug("Malformed address: %s", address)
            return UNDEFINED

        current: Any = root
        for step in steps:
            current = self._step(current, step)
            if is_undefined(current):
                logger.debug("Address did not resolve: %s (at %r)", address, step)
                return UNDEFINED
        return current

    def _step(self, current: Any, step: Step) -> Any:
        if isinstance(current, Mapping):
            if step in current:
                return current[step]
            # "[0]" against a dict keyed by "0"
            if isinstance(step, int) and str(step) in current:
                return current[str(step)]
            return UNDEFINED
        if isinstance(current, (list, tuple)):
            index = step if isinstance(step, int) else _as_index(step)
            if index is None or index < 0 or index >= len(current):
                return UNDEFINED
            return current[index]
        if current is None or is_undefined(current):
            return UNDEFINED
        if isinstance(step, str) and step and not step.startswith("_"):
            return getattr(current, step, UNDEFINED)
        return UNDEFINED


def _as_index(step: Step) -> Optional[int]:
    if isinstance(step, str) and step.isdigit():
        return int(step)
    return None
