"""
Low-level decoding helpers shared by the schema modules.

Every helper takes the JSON path of the value it inspects and raises
:class:`~nftjson.exceptions.DecodeError` naming that path. Nothing here
guesses: a value of the wrong JSON type is an error, never coerced.

The flexible-shape helpers accept a field given as absent/``null``, a single
scalar, or an array, and normalize it to a tuple or frozenset. Encoding
always produces the array (or absent) shape, so a bare scalar on input does
not survive a round trip byte for byte, only value for value.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from enum import Enum
from typing import Any, TypeVar

from nftjson.exceptions import DecodeError, EncodeError, JsonPath, UnknownEnumValue

E = TypeVar("E", bound=Enum)


def json_type_name(value: Any) -> str:
    """Name of the JSON type of a decoded value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


# =============================================================================
# Type checks
# =============================================================================

def expect_object(value: Any, path: JsonPath, what: str = "object") -> dict[str, Any]:
    if not isinstance(value, dict):
        raise DecodeError(f"expected {what} object, got {json_type_name(value)}", path)
    return value


def expect_array(value: Any, path: JsonPath, what: str = "array") -> list[Any]:
    if not isinstance(value, list):
        raise DecodeError(f"expected {what}, got {json_type_name(value)}", path)
    return value


def expect_str(value: Any, path: JsonPath) -> str:
    if not isinstance(value, str):
        raise DecodeError(f"expected string, got {json_type_name(value)}", path)
    return value


def expect_int(value: Any, path: JsonPath) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"expected integer, got {json_type_name(value)}", path)
    return value


def expect_bool(value: Any, path: JsonPath) -> bool:
    if not isinstance(value, bool):
        raise DecodeError(f"expected boolean, got {json_type_name(value)}", path)
    return value


def expect_pair(value: Any, path: JsonPath, what: str) -> tuple[Any, Any]:
    """A fixed-position 2-element array; other lengths are errors."""
    items = expect_array(value, path, f"{what} array")
    if len(items) != 2:
        raise DecodeError(f"{what} takes exactly 2 elements, got {len(items)}", path)
    return items[0], items[1]


def decode_enum(enum_cls: type[E], value: Any, path: JsonPath) -> E:
    """Map a wire token to its enumerator."""
    if not isinstance(value, str):
        raise DecodeError(
            f"expected {enum_cls.__name__} token, got {json_type_name(value)}", path
        )
    try:
        return enum_cls(value)
    except ValueError:
        raise UnknownEnumValue(enum_cls.__name__, value, path) from None


def token(member: Enum) -> str:
    """Wire token of an enumerator."""
    if not isinstance(member, Enum):
        raise EncodeError(f"expected an enumerator, got {member!r}")
    return member.value


# =============================================================================
# Field access
# =============================================================================

def required(data: dict[str, Any], key: str, path: JsonPath) -> Any:
    if data.get(key) is None:
        raise DecodeError(f"missing required field {key!r}", path)
    return data[key]


def req_str(data: dict[str, Any], key: str, path: JsonPath) -> str:
    return expect_str(required(data, key, path), path + (key,))


def req_int(data: dict[str, Any], key: str, path: JsonPath) -> int:
    return expect_int(required(data, key, path), path + (key,))


def req_enum(enum_cls: type[E], data: dict[str, Any], key: str, path: JsonPath) -> E:
    return decode_enum(enum_cls, required(data, key, path), path + (key,))


def opt_str(data: dict[str, Any], key: str, path: JsonPath) -> str | None:
    value = data.get(key)
    return None if value is None else expect_str(value, path + (key,))


def opt_int(data: dict[str, Any], key: str, path: JsonPath) -> int | None:
    value = data.get(key)
    return None if value is None else expect_int(value, path + (key,))


def opt_bool(data: dict[str, Any], key: str, path: JsonPath) -> bool | None:
    value = data.get(key)
    return None if value is None else expect_bool(value, path + (key,))


def opt_enum(enum_cls: type[E], data: dict[str, Any], key: str, path: JsonPath) -> E | None:
    value = data.get(key)
    return None if value is None else decode_enum(enum_cls, value, path + (key,))


def with_optional(base: dict[str, Any], optional: dict[str, Any]) -> dict[str, Any]:
    """``base`` plus the entries of ``optional`` whose value is not None.

    Absent optional fields are omitted from the wire, never sent as null.
    """
    result = dict(base)
    for key, value in optional.items():
        if value is not None:
            result[key] = value
    return result


def optional_token(member: Enum | None) -> str | None:
    return None if member is None else token(member)


# =============================================================================
# Single-key dispatch
# =============================================================================

def single_key(
    value: Any,
    path: JsonPath,
    what: str,
    known: frozenset[str] | dict[str, Any] | None = None,
) -> tuple[str, Any]:
    """Split a single-key dispatch object into ``(key, payload)``.

    Zero keys, several keys, or (when ``known`` is given) an unrecognized
    key are all errors.
    """
    obj = expect_object(value, path, what)
    if len(obj) != 1:
        keys = ", ".join(repr(k) for k in obj) or "none"
        raise DecodeError(
            f"expected a {what} object with exactly one key, got {len(obj)} ({keys})",
            path,
        )
    key, payload = next(iter(obj.items()))
    if known is not None and key not in known:
        raise DecodeError(f"unknown {what} {key!r}", path)
    return key, payload


def empty_payload(payload: Any, path: JsonPath, what: str) -> dict[str, Any]:
    """Payload of an optional-payload variant: ``null`` and ``{}`` are the same."""
    if payload is None:
        return {}
    return expect_object(payload, path, what)


# =============================================================================
# Flexible shapes
# =============================================================================

def decode_string_list(value: Any, path: JsonPath) -> tuple[str, ...]:
    """absent/null -> (), "x" -> ("x",), ["x", "y"] -> ("x", "y")."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    items = expect_array(value, path, "string or array of strings")
    return tuple(expect_str(item, path + (index,)) for index, item in enumerate(items))


def decode_flag_set(enum_cls: type[E], value: Any, path: JsonPath) -> frozenset[E]:
    """absent/null -> empty, "flag" -> {flag}, ["a", "b"] -> {a, b}."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset({decode_enum(enum_cls, value, path)})
    items = expect_array(value, path, f"{enum_cls.__name__} token or array")
    return frozenset(
        decode_enum(enum_cls, item, path + (index,)) for index, item in enumerate(items)
    )


def encode_string_list(values: tuple[str, ...]) -> list[str] | None:
    """Empty collections are omitted, everything else is an array."""
    return list(values) or None


def encode_flag_set(flags: frozenset[Enum]) -> list[str] | None:
    """Array in enum declaration order, or None when empty."""
    if not flags:
        return None
    enum_cls = type(next(iter(flags)))
    return [member.value for member in enum_cls if member in flags]
