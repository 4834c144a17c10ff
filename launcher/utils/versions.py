import logging
from itertools import zip_longest

from packaging import version

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def _component_key(component: str) -> tuple:
    # digits sort numerically and before any textual component
    if component.isdigit():
        return (0, int(component), "")
    return (1, 0, component)


def _compare_components(left: str, right: str) -> int:
    for a, b in zip_longest(left.split("."), right.split("."), fillvalue=None):
        if a == b:
            continue
        if a is None:
            return -1
        if b is None:
            return 1
        key_a, key_b = _component_key(a), _component_key(b)
        if key_a != key_b:
            return -1 if key_a < key_b else 1
    return 0


def compare_versions(left: str, right: str) -> int:
    """Returns -1, 0 or 1 like the old ``cmp``.

    PEP 440 strings are compared with ``packaging``; anything it refuses
    (mod authors write all sorts of things) falls back to a dot-split
    component comparison. An empty version is older than any other.
    """
    if not left or not right:
        return int(bool(left)) - int(bool(right))

    try:
        parsed_left = version.parse(left)
        parsed_right = version.parse(right)
    except version.InvalidVersion:
        logger.debug("Non PEP 440 version compared: '%s' vs '%s'", left, right)
        return _compare_components(left, right)

    if parsed_left < parsed_right:
        return -1
    if parsed_left > parsed_right:
        return 1
    return 0


def is_newer(candidate: str, current: str) -> bool:
    return compare_versions(candidate, current) > 0


def in_range(current: str, minimum: str = "", maximum: str = "") -> bool:
    """True if ``minimum <= current <= maximum``; empty bounds are open."""
    if minimum and compare_versions(current, minimum) < 0:
        return False
    if maximum and compare_versions(current, maximum) > 0:
        return False
    return True
