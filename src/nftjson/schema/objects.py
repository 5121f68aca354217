"""
Ruleset object model and document codec.

A document is ``{"nftables": [item, ...]}``. Each item is a single-key
object: a command when the key is a verb (``add``, ``delete``, ...), a bare
list object (the shape ``nft -j list ruleset`` prints) when the key names a
ruleset element (``table``, ``chain``, ``ct helper``, ...).

Table-scoped objects share the identity fields ``family``, ``table`` and
``name``; ``create()`` fills family and table from an
:class:`~nftjson.config.ObjectDefaults` value.

See libnftables-json(5), RULESET ELEMENTS and COMMAND OBJECTS.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Union

from nftjson.config import DEFAULT_OBJECTS, ObjectDefaults
from nftjson.exceptions import DecodeError, EncodeError, InvalidJSONError, JsonPath
from nftjson.schema.codec import (
    decode_enum,
    decode_flag_set,
    decode_string_list,
    empty_payload,
    encode_flag_set,
    encode_string_list,
    expect_array,
    expect_object,
    opt_bool,
    opt_enum,
    opt_int,
    opt_str,
    optional_token,
    req_enum,
    req_str,
    required,
    single_key,
    token,
    with_optional,
)
from nftjson.schema.expressions import SetItem, set_item_from_json, set_item_to_json
from nftjson.schema.statements import Meter, Statement, statement_from_json, statement_to_json
from nftjson.schema.types import (
    CommandVerb,
    CTHProto,
    LimitUnit,
    NfChainPolicy,
    NfChainType,
    NfFamily,
    NfHook,
    NfTimeUnit,
    SetFlag,
    SetPolicy,
    SetType,
    SynProxyFlag,
)

logger = logging.getLogger(__name__)

DOCUMENT_KEY = "nftables"

# A single type, or a tuple of types for concatenated keys.
SetTypeValue = Union[SetType, tuple[SetType, ...]]


def decode_set_type(value: Any, path: JsonPath) -> SetTypeValue:
    if isinstance(value, list):
        if not value:
            raise DecodeError("concatenated set type needs at least one type", path)
        return tuple(decode_enum(SetType, item, path + (i,)) for i, item in enumerate(value))
    return decode_enum(SetType, value, path)


def encode_set_type(value: SetTypeValue) -> Any:
    if isinstance(value, tuple):
        return [token(item) for item in value]
    return token(value)


def _decode_elems(data: dict[str, Any], path: JsonPath) -> tuple[SetItem, ...]:
    value = data.get("elem")
    if value is None:
        return ()
    items = expect_array(value, path + ("elem",), "elem array")
    return tuple(set_item_from_json(item, path + ("elem", i)) for i, item in enumerate(items))


def _encode_elems(elems: tuple[SetItem, ...]) -> list[Any] | None:
    return [set_item_to_json(item) for item in elems] or None


class _TableScoped:
    """Mixin for objects identified by family, table and name."""

    @classmethod
    def create(cls, name: str, defaults: ObjectDefaults = DEFAULT_OBJECTS, **fields: Any):
        return cls(family=defaults.family, table=defaults.table, name=name, **fields)


# =============================================================================
# Tables, chains and rules
# =============================================================================

@dataclass(frozen=True)
class Table:
    """A table; the container of chains, sets, maps and stateful objects."""

    family: NfFamily
    name: str
    handle: int | None = None

    @classmethod
    def create(cls, name: str | None = None, defaults: ObjectDefaults = DEFAULT_OBJECTS) -> "Table":
        return cls(family=defaults.family, name=name or defaults.table)

    def to_dict(self) -> dict[str, Any]:
        return with_optional(
            {"family": token(self.family), "name": self.name},
            {"handle": self.handle},
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Table":
        return cls(
            family=req_enum(NfFamily, data, "family", path),
            name=req_str(data, "name", path),
            handle=opt_int(data, "handle", path),
        )


@dataclass(frozen=True)
class Chain:
    """A chain.

    Base chains carry ``type``, ``hook``, ``prio`` and ``policy``; regular
    chains leave them unset. ``newname`` is only meaningful for rename.
    """

    family: NfFamily
    table: str
    name: str
    newname: str | None = None
    handle: int | None = None
    type: NfChainType | None = None
    hook: NfHook | None = None
    prio: int | None = None
    dev: tuple[str, ...] = ()
    policy: NfChainPolicy | None = None

    @classmethod
    def create(
        cls, name: str | None = None, defaults: ObjectDefaults = DEFAULT_OBJECTS, **fields: Any
    ) -> "Chain":
        return cls(family=defaults.family, table=defaults.table, name=name or defaults.chain, **fields)

    def to_dict(self) -> dict[str, Any]:
        return with_optional(
            {"family": token(self.family), "table": self.table, "name": self.name},
            {
                "newname": self.newname,
                "handle": self.handle,
                "type": optional_token(self.type),
                "hook": optional_token(self.hook),
                "prio": self.prio,
                "dev": encode_string_list(self.dev),
                "policy": optional_token(self.policy),
            },
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Chain":
        return cls(
            family=req_enum(NfFamily, data, "family", path),
            table=req_str(data, "table", path),
            name=req_str(data, "name", path),
            newname=opt_str(data, "newname", path),
            handle=opt_int(data, "handle", path),
            type=opt_enum(NfChainType, data, "type", path),
            hook=opt_enum(NfHook, data, "hook", path),
            prio=opt_int(data, "prio", path),
            dev=decode_string_list(data.get("dev"), path + ("dev",)),
            policy=opt_enum(NfChainPolicy, data, "policy", path),
        )


@dataclass(frozen=True)
class Rule:
    """A rule: statements evaluated left to right.

    ``handle`` identifies the rule for replace and delete; with insert and
    add, ``handle`` or ``index`` pick the position.
    """

    family: NfFamily
    table: str
    chain: str
    expr: tuple[Statement, ...] = ()
    handle: int | None = None
    index: int | None = None
    comment: str | None = None

    @classmethod
    def create(
        cls, expr: tuple[Statement, ...] = (), defaults: ObjectDefaults = DEFAULT_OBJECTS, **fields: Any
    ) -> "Rule":
        return cls(
            family=defaults.family,
            table=defaults.table,
            chain=defaults.chain,
            expr=tuple(expr),
            **fields,
        )

    def to_dict(self) -> dict[str, Any]:
        return with_optional(
            {"family": token(self.family), "table": self.table, "chain": self.chain},
            {
                "expr": [statement_to_json(stmt) for stmt in self.expr] or None,
                "handle": self.handle,
                "index": self.index,
                "comment": self.comment,
            },
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Rule":
        expr: tuple[Statement, ...] = ()
        if data.get("expr") is not None:
            items = expect_array(data["expr"], path + ("expr",), "statement array")
            expr = tuple(
                statement_from_json(item, path + ("expr", i)) for i, item in enumerate(items)
            )
        return cls(
            family=req_enum(NfFamily, data, "family", path),
            table=req_str(data, "table", path),
            chain=req_str(data, "chain", path),
            expr=expr,
            handle=opt_int(data, "handle", path),
            index=opt_int(data, "index", path),
            comment=opt_str(data, "comment", path),
        )


# =============================================================================
# Sets, maps and elements
# =============================================================================

def _set_fields(data: dict[str, Any], path: JsonPath) -> dict[str, Any]:
    """Fields shared by sets and maps, decoded."""
    return {
        "family": req_enum(NfFamily, data, "family", path),
        "table": req_str(data, "table", path),
        "name": req_str(data, "name", path),
        "type": decode_set_type(required(data, "type", path), path + ("type",)),
        "handle": opt_int(data, "handle", path),
        "policy": opt_enum(SetPolicy, data, "policy", path),
        "flags": decode_flag_set(SetFlag, data.get("flags"), path + ("flags",)),
        "elem": _decode_elems(data, path),
        "timeout": opt_int(data, "timeout", path),
        "gc_interval": opt_int(data, "gc-interval", path),
        "size": opt_int(data, "size", path),
        "comment": opt_str(data, "comment", path),
    }


def _set_optional(obj: Any) -> dict[str, Any]:
    return {
        "policy": optional_token(obj.policy),
        "flags": encode_flag_set(obj.flags),
        "elem": _encode_elems(obj.elem),
        "timeout": obj.timeout,
        "gc-interval": obj.gc_interval,
        "size": obj.size,
        "comment": obj.comment,
    }


@dataclass(frozen=True)
class Set(_TableScoped):
    """A named set."""

    family: NfFamily
    table: str
    name: str
    type: SetTypeValue
    handle: int | None = None
    policy: SetPolicy | None = None
    flags: frozenset[SetFlag] = field(default_factory=frozenset)
    elem: tuple[SetItem, ...] = ()
    timeout: int | None = None
    gc_interval: int | None = None
    size: int | None = None
    comment: str | None = None

    def to_dict(self) -> dict[str, Any]:
        base = {"family": token(self.family), "table": self.table, "name": self.name}
        base = with_optional(base, {"handle": self.handle})
        base["type"] = encode_set_type(self.type)
        return with_optional(base, _set_optional(self))

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Set":
        return cls(**_set_fields(data, path))


@dataclass(frozen=True)
class Map(_TableScoped):
    """A named map; ``map`` is the type of the mapped values."""

    family: NfFamily
    table: str
    name: str
    type: SetTypeValue
    map: SetTypeValue
    handle: int | None = None
    policy: SetPolicy | None = None
    flags: frozenset[SetFlag] = field(default_factory=frozenset)
    elem: tuple[SetItem, ...] = ()
    timeout: int | None = None
    gc_interval: int | None = None
    size: int | None = None
    comment: str | None = None

    def to_dict(self) -> dict[str, Any]:
        base = {"family": token(self.family), "table": self.table, "name": self.name}
        base = with_optional(base, {"handle": self.handle})
        base["type"] = encode_set_type(self.type)
        base["map"] = encode_set_type(self.map)
        return with_optional(base, _set_optional(self))

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Map":
        return cls(
            map=decode_set_type(required(data, "map", path), path + ("map",)),
            **_set_fields(data, path),
        )


@dataclass(frozen=True)
class Element(_TableScoped):
    """Elements to add to or delete from the set or map ``name``."""

    family: NfFamily
    table: str
    name: str
    elem: tuple[SetItem, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "family": token(self.family),
            "table": self.table,
            "name": self.name,
            "elem": [set_item_to_json(item) for item in self.elem],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Element":
        required(data, "elem", path)
        return cls(
            family=req_enum(NfFamily, data, "family", path),
            table=req_str(data, "table", path),
            name=req_str(data, "name", path),
            elem=_decode_elems(data, path),
        )


@dataclass(frozen=True)
class FlowTable(_TableScoped):
    """A flowtable; ``dev`` lists the devices to offload traffic from."""

    family: NfFamily
    table: str
    name: str
    handle: int | None = None
    hook: NfHook | None = None
    prio: int | None = None
    dev: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return with_optional(
            {"family": token(self.family), "table": self.table, "name": self.name},
            {
                "handle": self.handle,
                "hook": optional_token(self.hook),
                "prio": self.prio,
                "dev": encode_string_list(self.dev),
            },
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "FlowTable":
        return cls(
            family=req_enum(NfFamily, data, "family", path),
            table=req_str(data, "table", path),
            name=req_str(data, "name", path),
            handle=opt_int(data, "handle", path),
            hook=opt_enum(NfHook, data, "hook", path),
            prio=opt_int(data, "prio", path),
            dev=decode_string_list(data.get("dev"), path + ("dev",)),
        )


# =============================================================================
# Stateful objects
# =============================================================================

def _identity(data: dict[str, Any], path: JsonPath) -> dict[str, Any]:
    return {
        "family": req_enum(NfFamily, data, "family", path),
        "table": req_str(data, "table", path),
        "name": req_str(data, "name", path),
        "handle": opt_int(data, "handle", path),
    }


def _identity_dict(obj: Any) -> dict[str, Any]:
    return with_optional(
        {"family": token(obj.family), "table": obj.table, "name": obj.name},
        {"handle": obj.handle},
    )


@dataclass(frozen=True)
class Counter(_TableScoped):
    """A named counter."""

    family: NfFamily
    table: str
    name: str
    handle: int | None = None
    packets: int | None = None
    bytes: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional(_identity_dict(self), {"packets": self.packets, "bytes": self.bytes})

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Counter":
        return cls(
            packets=opt_int(data, "packets", path),
            bytes=opt_int(data, "bytes", path),
            **_identity(data, path),
        )


@dataclass(frozen=True)
class Quota(_TableScoped):
    """A named quota."""

    family: NfFamily
    table: str
    name: str
    handle: int | None = None
    bytes: int | None = None
    used: int | None = None
    inv: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional(
            _identity_dict(self), {"bytes": self.bytes, "used": self.used, "inv": self.inv}
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Quota":
        return cls(
            bytes=opt_int(data, "bytes", path),
            used=opt_int(data, "used", path),
            inv=opt_bool(data, "inv", path),
            **_identity(data, path),
        )


@dataclass(frozen=True)
class CTHelper(_TableScoped):
    """A named ct helper; ``type`` is the helper name, e.g. ``"ftp"``."""

    family: NfFamily
    table: str
    name: str
    type: str = "ftp"
    handle: int | None = None
    protocol: str | None = None
    l3proto: str | None = None

    def to_dict(self) -> dict[str, Any]:
        base = _identity_dict(self)
        base["type"] = self.type
        return with_optional(base, {"protocol": self.protocol, "l3proto": self.l3proto})

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "CTHelper":
        return cls(
            type=req_str(data, "type", path),
            protocol=opt_str(data, "protocol", path),
            l3proto=opt_str(data, "l3proto", path),
            **_identity(data, path),
        )


@dataclass(frozen=True)
class Limit(_TableScoped):
    """A named limit."""

    family: NfFamily
    table: str
    name: str
    handle: int | None = None
    rate: int | None = None
    per: NfTimeUnit | None = None
    burst: int | None = None
    unit: LimitUnit | None = None
    inv: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional(
            _identity_dict(self),
            {
                "rate": self.rate,
                "per": optional_token(self.per),
                "burst": self.burst,
                "unit": optional_token(self.unit),
                "inv": self.inv,
            },
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Limit":
        return cls(
            rate=opt_int(data, "rate", path),
            per=opt_enum(NfTimeUnit, data, "per", path),
            burst=opt_int(data, "burst", path),
            unit=opt_enum(LimitUnit, data, "unit", path),
            inv=opt_bool(data, "inv", path),
            **_identity(data, path),
        )


@dataclass(frozen=True)
class CTTimeout(_TableScoped):
    """A named ct timeout policy."""

    family: NfFamily
    table: str
    name: str
    handle: int | None = None
    protocol: CTHProto | None = None
    state: str | None = None
    value: int | None = None
    l3proto: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional(
            _identity_dict(self),
            {
                "protocol": optional_token(self.protocol),
                "state": self.state,
                "value": self.value,
                "l3proto": self.l3proto,
            },
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "CTTimeout":
        return cls(
            protocol=opt_enum(CTHProto, data, "protocol", path),
            state=opt_str(data, "state", path),
            value=opt_int(data, "value", path),
            l3proto=opt_str(data, "l3proto", path),
            **_identity(data, path),
        )


@dataclass(frozen=True)
class CTExpectation(_TableScoped):
    """A named ct expectation."""

    family: NfFamily
    table: str
    name: str
    handle: int | None = None
    l3proto: str | None = None
    protocol: CTHProto | None = None
    dport: int | None = None
    timeout: int | None = None
    size: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional(
            _identity_dict(self),
            {
                "l3proto": self.l3proto,
                "protocol": optional_token(self.protocol),
                "dport": self.dport,
                "timeout": self.timeout,
                "size": self.size,
            },
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "CTExpectation":
        return cls(
            l3proto=opt_str(data, "l3proto", path),
            protocol=opt_enum(CTHProto, data, "protocol", path),
            dport=opt_int(data, "dport", path),
            timeout=opt_int(data, "timeout", path),
            size=opt_int(data, "size", path),
            **_identity(data, path),
        )


@dataclass(frozen=True)
class SynProxy(_TableScoped):
    """A named synproxy."""

    family: NfFamily
    table: str
    name: str
    handle: int | None = None
    mss: int | None = None
    wscale: int | None = None
    flags: frozenset[SynProxyFlag] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, Any]:
        return with_optional(
            _identity_dict(self),
            {"mss": self.mss, "wscale": self.wscale, "flags": encode_flag_set(self.flags)},
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "SynProxy":
        return cls(
            mss=opt_int(data, "mss", path),
            wscale=opt_int(data, "wscale", path),
            flags=decode_flag_set(SynProxyFlag, data.get("flags"), path + ("flags",)),
            **_identity(data, path),
        )


@dataclass(frozen=True)
class Metainfo:
    """Engine version information, first item of ``nft -j`` output."""

    version: str | None = None
    release_name: str | None = None
    json_schema_version: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional({}, {
            "version": self.version,
            "release_name": self.release_name,
            "json_schema_version": self.json_schema_version,
        })

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Metainfo":
        return cls(
            version=opt_str(data, "version", path),
            release_name=opt_str(data, "release_name", path),
            json_schema_version=opt_int(data, "json_schema_version", path),
        )


ListObject = Union[
    Table, Chain, Rule, Set, Map, Element, FlowTable, Counter, Quota,
    CTHelper, Limit, Metainfo, CTTimeout, CTExpectation, SynProxy,
]

LIST_OBJECTS: dict[str, type] = {
    "table": Table,
    "chain": Chain,
    "rule": Rule,
    "set": Set,
    "map": Map,
    "element": Element,
    "flowtable": FlowTable,
    "counter": Counter,
    "quota": Quota,
    "ct helper": CTHelper,
    "limit": Limit,
    "metainfo": Metainfo,
    "ct timeout": CTTimeout,
    "ct expectation": CTExpectation,
    "synproxy": SynProxy,
}
_LIST_OBJECT_KEYS = {cls: key for key, cls in LIST_OBJECTS.items()}


def list_object_key(obj: ListObject) -> str:
    """Wire key of a list object."""
    key = _LIST_OBJECT_KEYS.get(type(obj))
    if key is None:
        raise EncodeError(f"not a list object: {obj!r}")
    return key


def list_object_from_json(value: Any, path: JsonPath = ()) -> ListObject:
    key, payload = single_key(value, path, "list object", LIST_OBJECTS)
    inner = path + (key,)
    return LIST_OBJECTS[key].from_dict(expect_object(payload, inner, key), inner)


def list_object_to_json(obj: ListObject) -> dict[str, Any]:
    return {list_object_key(obj): obj.to_dict()}


# =============================================================================
# Reset and flush targets
# =============================================================================

@dataclass(frozen=True)
class Counters:
    """All counters matching the given filters."""

    items: tuple[Counter, ...] = ()


@dataclass(frozen=True)
class Quotas:
    """All quotas matching the given filters."""

    items: tuple[Quota, ...] = ()


@dataclass(frozen=True)
class Ruleset:
    """The whole live ruleset."""


ResetObject = Union[Counter, Quota, Counters, Quotas]
FlushObject = Union[Table, Chain, Set, Map, Meter, Ruleset]

_RESET_TYPES = (Counter, Quota, Counters, Quotas)
_FLUSH_TYPES = (Table, Chain, Set, Map, Meter, Ruleset)
RESET_KEYS = frozenset({"counter", "counters", "quota", "quotas"})
FLUSH_KEYS = frozenset({"table", "chain", "set", "map", "meter", "ruleset"})


def reset_object_from_json(value: Any, path: JsonPath = ()) -> ResetObject:
    key, payload = single_key(value, path, "reset object", RESET_KEYS)
    inner = path + (key,)
    if key == "counter":
        return Counter.from_dict(expect_object(payload, inner, key), inner)
    if key == "quota":
        return Quota.from_dict(expect_object(payload, inner, key), inner)
    cls, wrapper = (Counter, Counters) if key == "counters" else (Quota, Quotas)
    items = expect_array(payload, inner, f"{key} array")
    return wrapper(tuple(
        cls.from_dict(expect_object(item, inner + (i,), cls.__name__.lower()), inner + (i,))
        for i, item in enumerate(items)
    ))


def reset_object_to_json(obj: ResetObject) -> dict[str, Any]:
    if isinstance(obj, Counters):
        return {"counters": [item.to_dict() for item in obj.items]}
    if isinstance(obj, Quotas):
        return {"quotas": [item.to_dict() for item in obj.items]}
    if isinstance(obj, (Counter, Quota)):
        return list_object_to_json(obj)
    raise EncodeError(f"not a reset object: {obj!r}")


def flush_object_from_json(value: Any, path: JsonPath = ()) -> FlushObject:
    key, payload = single_key(value, path, "flush object", FLUSH_KEYS)
    inner = path + (key,)
    if key == "ruleset":
        empty_payload(payload, inner, key)
        return Ruleset()
    if key == "meter":
        return Meter.from_dict(expect_object(payload, inner, key), inner)
    return LIST_OBJECTS[key].from_dict(expect_object(payload, inner, key), inner)


def flush_object_to_json(obj: FlushObject) -> dict[str, Any]:
    if isinstance(obj, Ruleset):
        return {"ruleset": None}
    if isinstance(obj, Meter):
        return {"meter": obj.to_dict()}
    if isinstance(obj, (Table, Chain, Set, Map)):
        return list_object_to_json(obj)
    raise EncodeError(f"not a flush object: {obj!r}")


# =============================================================================
# Commands
# =============================================================================

@dataclass(frozen=True)
class Command:
    """A verb applied to a ruleset element.

    ``replace`` only takes a :class:`Rule` and ``rename`` only a
    :class:`Chain`; ``reset`` and ``flush`` take their own target sets.
    """

    verb: CommandVerb
    obj: Any

    def __post_init__(self):
        verb = CommandVerb(self.verb)
        object.__setattr__(self, "verb", verb)
        if verb is CommandVerb.REPLACE:
            allowed: tuple[type, ...] = (Rule,)
        elif verb is CommandVerb.RENAME:
            allowed = (Chain,)
        elif verb is CommandVerb.RESET:
            allowed = _RESET_TYPES
        elif verb is CommandVerb.FLUSH:
            allowed = _FLUSH_TYPES
        else:
            allowed = tuple(LIST_OBJECTS.values())
        if not isinstance(self.obj, allowed):
            raise TypeError(f"{verb.value} does not take {type(self.obj).__name__}")

    def to_dict(self) -> dict[str, Any]:
        return command_to_json(self)


_COMMAND_PAYLOADS: dict[CommandVerb, Callable[[Any, JsonPath], Any]] = {
    CommandVerb.REPLACE: lambda value, path: _narrowed(value, path, "rule", Rule),
    CommandVerb.RENAME: lambda value, path: _narrowed(value, path, "chain", Chain),
    CommandVerb.RESET: reset_object_from_json,
    CommandVerb.FLUSH: flush_object_from_json,
}

COMMAND_KEYS = frozenset(verb.value for verb in CommandVerb)


def _narrowed(value: Any, path: JsonPath, key: str, cls: type) -> Any:
    _, payload = single_key(value, path, f"{key} object", frozenset({key}))
    inner = path + (key,)
    return cls.from_dict(expect_object(payload, inner, key), inner)


def command_from_json(value: Any, path: JsonPath = ()) -> Command:
    key, payload = single_key(value, path, "command", COMMAND_KEYS)
    verb = CommandVerb(key)
    decode = _COMMAND_PAYLOADS.get(verb, list_object_from_json)
    return Command(verb, decode(payload, path + (key,)))


def command_to_json(command: Command) -> dict[str, Any]:
    if command.verb is CommandVerb.RESET:
        payload = reset_object_to_json(command.obj)
    elif command.verb is CommandVerb.FLUSH:
        payload = flush_object_to_json(command.obj)
    else:
        payload = list_object_to_json(command.obj)
    return {token(command.verb): payload}


# =============================================================================
# Documents
# =============================================================================

Item = Union[Command, ListObject]


def item_from_json(value: Any, path: JsonPath = ()) -> Item:
    """Decode an item: a command if its key is a verb, else a list object."""
    key, _ = single_key(value, path, "item")
    if key in COMMAND_KEYS:
        return command_from_json(value, path)
    if key in LIST_OBJECTS:
        return list_object_from_json(value, path)
    raise DecodeError(f"unknown command or object {key!r}", path)


def item_to_json(item: Item) -> dict[str, Any]:
    if isinstance(item, Command):
        return command_to_json(item)
    return list_object_to_json(item)


@dataclass(frozen=True)
class Document:
    """An ordered sequence of items."""

    items: tuple[Item, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {DOCUMENT_KEY: [item_to_json(item) for item in self.items]}

    @classmethod
    def from_dict(cls, data: Any, path: JsonPath = ()) -> "Document":
        obj = expect_object(data, path, "document")
        items = expect_array(required(obj, DOCUMENT_KEY, path), path + (DOCUMENT_KEY,), "item array")
        return cls(tuple(
            item_from_json(item, path + (DOCUMENT_KEY, i)) for i, item in enumerate(items)
        ))

    @property
    def metainfo(self) -> Metainfo | None:
        """The leading metainfo item, if the engine sent one."""
        if self.items and isinstance(self.items[0], Metainfo):
            return self.items[0]
        return None


def serialize(document: Document) -> bytes:
    """Encode a document as compact UTF-8 JSON."""
    return json.dumps(document.to_dict(), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def deserialize(data: bytes | str) -> Document:
    """Decode a document from UTF-8 JSON bytes or text."""
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidJSONError(f"input is not valid UTF-8: {e}") from e
    try:
        value = json.loads(data)
    except json.JSONDecodeError as e:
        raise InvalidJSONError(f"invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})") from e
    try:
        return Document.from_dict(value)
    except DecodeError as e:
        logger.debug("Document rejected at %s: %s", e.location, e.message)
        raise


__all__ = [
    "DOCUMENT_KEY", "SetTypeValue", "Table", "Chain", "Rule", "Set", "Map",
    "Element", "FlowTable", "Counter", "Quota", "CTHelper", "Limit",
    "Metainfo", "CTTimeout", "CTExpectation", "SynProxy", "ListObject",
    "LIST_OBJECTS", "Counters", "Quotas", "Ruleset", "ResetObject",
    "FlushObject", "Command", "COMMAND_KEYS", "Item", "Document",
    "list_object_key", "list_object_from_json", "list_object_to_json",
    "reset_object_from_json", "reset_object_to_json",
    "flush_object_from_json", "flush_object_to_json",
    "command_from_json", "command_to_json", "item_from_json", "item_to_json",
    "serialize", "deserialize",
]
