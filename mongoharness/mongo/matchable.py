"""
Structural matching of expected documents against actual ones.

An expected mapping is a pattern: every key it names must be present in the
actual mapping with a matching value, and extra actual keys are ignored.
Sequences match element by element and must have the same length. Numbers
compare by value across int and float; bools only match bools. Everything
else compares with ``==`` after a type check.
"""

from collections.abc import Mapping, Sequence
from typing import Any


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _is_sequence(v: Any) -> bool:
    return isinstance(v, Sequence) and not isinstance(v, (str, bytes, bytearray))


def find_mismatch(actual: Any, expected: Any, path: str = "") -> str | None:
    """
    Locate the first place where actual does not match expected.

    Returns:
        A description of the mismatch, or None if actual matches
    """
    where = path or "<root>"

    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping):
            return f"{where}: expected a document, got {type(actual).__name__}"
        for key, value in expected.items():
            sub = f"{path}.{key}" if path else str(key)
            if key not in actual:
                return f"{sub}: missing"
            mismatch = find_mismatch(actual[key], value, sub)
            if mismatch is not None:
                return mismatch
        return None

    if _is_sequence(expected):
        if not _is_sequence(actual):
            return f"{where}: expected an array, got {type(actual).__name__}"
        if len(actual) != len(expected):
            return f"{where}: expected {len(expected)} elements, got {len(actual)}"
        for i, (a, e) in enumerate(zip(actual, expected)):
            mismatch = find_mismatch(a, e, f"{path}[{i}]")
            if mismatch is not None:
                return mismatch
        return None

    if _is_number(expected):
        if _is_number(actual) and actual == expected:
            return None
        return f"{where}: expected {expected!r}, got {actual!r}"

    if type(actual) is not type(expected) or actual != expected:
        return f"{where}: expected {expected!r}, got {actual!r}"
    return None


def matches(expected: Any, actual: Any) -> bool:
    """Check whether actual matches the expected pattern."""
    return find_mismatch(actual, expected) is None


def assert_matches(actual: Any, expected: Any, description: str | None = None) -> None:
    """
    Assert that actual matches the expected pattern.

    Args:
        actual: Value produced by the code under test
        expected: Pattern to match
        description: Prefix for the failure message

    Raises:
        AssertionError: Naming the first mismatching path

    Example:
        >>> assert_matches({"insert": "coll", "ordered": True}, {"insert": "coll"})
    """
    mismatch = find_mismatch(actual, expected)
    if mismatch is None:
        return
    msg = f"{mismatch}\n  actual:   {actual!r}\n  expected: {expected!r}"
    if description:
        msg = f"{description}: {msg}"
    raise AssertionError(msg)
