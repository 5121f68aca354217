"""
Statement model.

Statements make up rule bodies and are single-key objects whose key names
the statement. Verdict-likes and a few others take an optional payload:
``{"accept": null}``, ``{"accept": {}}`` and a payload with no fields all
decode to the same value, which encodes back as ``null``.

``counter``, ``quota`` and ``limit`` take either an object (anonymous, lives
in the rule) or a string (reference to a named object).

See libnftables-json(5), STATEMENTS.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Union

from nftjson.exceptions import DecodeError, EncodeError, JsonPath
from nftjson.schema.codec import (
    decode_flag_set,
    empty_payload,
    encode_flag_set,
    expect_object,
    json_type_name,
    opt_bool,
    opt_enum,
    opt_int,
    opt_str,
    optional_token,
    req_enum,
    req_int,
    req_str,
    required,
    single_key,
    token,
    with_optional,
)
from nftjson.schema.expressions import (
    Accept,
    Continue,
    Drop,
    Expression,
    Goto,
    Jump,
    Return,
    VERDICT_KEYS,
    expression_from_json,
    expression_to_json,
    is_verdict,
    verdict_from_json,
    verdict_to_json,
)
from nftjson.schema.types import (
    FwdFamily,
    LogFlag,
    LogLevel,
    NatFamily,
    NatFlag,
    NatKind,
    NfTimeUnit,
    Operator,
    QueueFlag,
    RejectCode,
    RejectType,
    SetOp,
    SynProxyFlag,
)

__all__ = [
    "Accept", "Drop", "Continue", "Return", "Jump", "Goto",
    "Match", "Counter", "CounterRef", "Mangle", "Quota", "QuotaRef",
    "Limit", "LimitRef", "Flow", "Fwd", "Notrack", "Dup", "Nat", "Reject",
    "SetStatement", "MapStatement", "Log", "CTHelperRef", "Meter", "Queue",
    "VerdictMap", "CTCount", "CTTimeoutRef", "CTExpectationRef", "XT",
    "SynProxy", "TProxy", "Statement", "STATEMENT_KEYS",
    "statement_from_json", "statement_to_json",
    "counter_from_json", "counter_to_json", "is_statement",
]


def _expr(data: dict[str, Any], key: str, path: JsonPath) -> Expression:
    return expression_from_json(required(data, key, path), path + (key,))


def _opt_expr(data: dict[str, Any], key: str, path: JsonPath) -> Expression | None:
    value = data.get(key)
    return None if value is None else expression_from_json(value, path + (key,))


def _opt_expr_json(expr: Expression | None) -> Any:
    return None if expr is None else expression_to_json(expr)


# =============================================================================
# Matching and counting
# =============================================================================

@dataclass(frozen=True)
class Match:
    """Compare ``left`` (usually packet data) with ``right`` (usually a constant).

    A false match ends evaluation of the rule.
    """

    left: Expression
    right: Expression
    op: Operator = Operator.EQ

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": token(self.op),
            "left": expression_to_json(self.left),
            "right": expression_to_json(self.right),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Match":
        return cls(
            left=_expr(data, "left", path),
            right=_expr(data, "right", path),
            op=req_enum(Operator, data, "op", path),
        )


@dataclass(frozen=True)
class Counter:
    """Anonymous counter; given values act as initial values."""

    packets: int | None = None
    bytes: int | None = None

    def to_dict(self) -> dict[str, Any] | None:
        return with_optional({}, {"packets": self.packets, "bytes": self.bytes}) or None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Counter":
        return cls(packets=opt_int(data, "packets", path), bytes=opt_int(data, "bytes", path))


@dataclass(frozen=True)
class CounterRef:
    """Reference to a named counter object."""

    name: str


def counter_from_json(payload: Any, path: JsonPath) -> Counter | CounterRef:
    if isinstance(payload, str):
        return CounterRef(payload)
    return Counter.from_dict(empty_payload(payload, path, "counter"), path)


def counter_to_json(counter: Counter | CounterRef) -> Any:
    if isinstance(counter, CounterRef):
        return counter.name
    if isinstance(counter, Counter):
        return counter.to_dict()
    raise EncodeError(f"not a counter: {counter!r}")


@dataclass(frozen=True)
class Mangle:
    """Change packet data or meta info ``key`` to ``value``."""

    key: Expression
    value: Expression

    def to_dict(self) -> dict[str, Any]:
        return {"key": expression_to_json(self.key), "value": expression_to_json(self.value)}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Mangle":
        return cls(key=_expr(data, "key", path), value=_expr(data, "value", path))


@dataclass(frozen=True)
class Quota:
    """Anonymous quota."""

    val: int
    val_unit: str = "bytes"
    used: int | None = None
    used_unit: str | None = None
    inv: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional(
            {"val": self.val, "val_unit": self.val_unit},
            {"used": self.used, "used_unit": self.used_unit, "inv": self.inv},
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Quota":
        return cls(
            val=req_int(data, "val", path),
            val_unit=req_str(data, "val_unit", path),
            used=opt_int(data, "used", path),
            used_unit=opt_str(data, "used_unit", path),
            inv=opt_bool(data, "inv", path),
        )


@dataclass(frozen=True)
class QuotaRef:
    """Reference to a named quota object."""

    name: str


@dataclass(frozen=True)
class Limit:
    """Anonymous rate limit."""

    rate: int
    rate_unit: str | None = None  # "packets" when omitted
    per: NfTimeUnit | None = None
    burst: int | None = None
    burst_unit: str | None = None
    inv: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional(
            {"rate": self.rate},
            {
                "rate_unit": self.rate_unit,
                "per": optional_token(self.per),
                "burst": self.burst,
                "burst_unit": self.burst_unit,
                "inv": self.inv,
            },
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Limit":
        return cls(
            rate=req_int(data, "rate", path),
            rate_unit=opt_str(data, "rate_unit", path),
            per=opt_enum(NfTimeUnit, data, "per", path),
            burst=opt_int(data, "burst", path),
            burst_unit=opt_str(data, "burst_unit", path),
            inv=opt_bool(data, "inv", path),
        )


@dataclass(frozen=True)
class LimitRef:
    """Reference to a named limit object."""

    name: str


# =============================================================================
# Forwarding and translation
# =============================================================================

@dataclass(frozen=True)
class Flow:
    """Offload matching traffic to a flowtable."""

    op: SetOp
    flowtable: str

    def to_dict(self) -> dict[str, Any]:
        return {"op": token(self.op), "flowtable": self.flowtable}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Flow":
        return cls(op=req_enum(SetOp, data, "op", path), flowtable=req_str(data, "flowtable", path))


@dataclass(frozen=True)
class Fwd:
    """Forward the packet to a different destination."""

    dev: Expression | None = None
    family: FwdFamily | None = None
    addr: Expression | None = None

    def to_dict(self) -> dict[str, Any] | None:
        return with_optional({}, {
            "dev": _opt_expr_json(self.dev),
            "family": optional_token(self.family),
            "addr": _opt_expr_json(self.addr),
        }) or None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Fwd":
        return cls(
            dev=_opt_expr(data, "dev", path),
            family=opt_enum(FwdFamily, data, "family", path),
            addr=_opt_expr(data, "addr", path),
        )


@dataclass(frozen=True)
class Notrack:
    """Disable connection tracking for the packet."""


@dataclass(frozen=True)
class Dup:
    """Duplicate the packet to ``addr``, optionally through ``dev``."""

    addr: Expression
    dev: Expression | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional({"addr": expression_to_json(self.addr)}, {"dev": _opt_expr_json(self.dev)})

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Dup":
        return cls(addr=_expr(data, "addr", path), dev=_opt_expr(data, "dev", path))


@dataclass(frozen=True)
class Nat:
    """``snat``, ``dnat``, ``masquerade`` or ``redirect``.

    Masquerade and redirect only use a subset of the fields.
    """

    kind: NatKind
    addr: Expression | None = None
    family: NatFamily | None = None  # required in inet tables
    port: Expression | None = None
    flags: frozenset[NatFlag] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, Any] | None:
        return with_optional({}, {
            "addr": _opt_expr_json(self.addr),
            "family": optional_token(self.family),
            "port": _opt_expr_json(self.port),
            "flags": encode_flag_set(self.flags),
        }) or None

    @classmethod
    def from_dict(cls, kind: NatKind, data: dict[str, Any], path: JsonPath = ()) -> "Nat":
        return cls(
            kind=kind,
            addr=_opt_expr(data, "addr", path),
            family=opt_enum(NatFamily, data, "family", path),
            port=_opt_expr(data, "port", path),
            flags=decode_flag_set(NatFlag, data.get("flags"), path + ("flags",)),
        )


@dataclass(frozen=True)
class Reject:
    """Reject the packet with an error reply."""

    type: RejectType | None = None
    expr: RejectCode | None = None

    def to_dict(self) -> dict[str, Any] | None:
        return with_optional({}, {
            "type": optional_token(self.type),
            "expr": optional_token(self.expr),
        }) or None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Reject":
        return cls(
            type=opt_enum(RejectType, data, "type", path),
            expr=opt_enum(RejectCode, data, "expr", path),
        )


# =============================================================================
# Dynamic sets and maps
# =============================================================================

@dataclass(frozen=True)
class SetStatement:
    """Add, update or delete ``elem`` in the set ``set`` (``"@name"``)."""

    op: SetOp
    elem: Expression
    set: str

    def to_dict(self) -> dict[str, Any]:
        return {"op": token(self.op), "elem": expression_to_json(self.elem), "set": self.set}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "SetStatement":
        return cls(
            op=req_enum(SetOp, data, "op", path),
            elem=_expr(data, "elem", path),
            set=req_str(data, "set", path),
        )


@dataclass(frozen=True)
class MapStatement:
    """Add, update or delete ``elem : data`` in the map ``map``."""

    op: SetOp
    elem: Expression
    data: Expression
    map: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": token(self.op),
            "elem": expression_to_json(self.elem),
            "data": expression_to_json(self.data),
            "map": self.map,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "MapStatement":
        return cls(
            op=req_enum(SetOp, data, "op", path),
            elem=_expr(data, "elem", path),
            data=_expr(data, "data", path),
            map=req_str(data, "map", path),
        )


@dataclass(frozen=True)
class VerdictMap:
    """Apply the verdict ``data`` maps ``key`` to."""

    key: Expression
    data: Expression

    def to_dict(self) -> dict[str, Any]:
        return {"key": expression_to_json(self.key), "data": expression_to_json(self.data)}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "VerdictMap":
        return cls(key=_expr(data, "key", path), data=_expr(data, "data", path))


@dataclass(frozen=True)
class Meter:
    """Apply ``stmt`` per ``key`` using the meter ``name``."""

    name: str
    key: Expression
    stmt: "Statement"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "key": expression_to_json(self.key),
            "stmt": statement_to_json(self.stmt),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Meter":
        return cls(
            name=req_str(data, "name", path),
            key=_expr(data, "key", path),
            stmt=statement_from_json(required(data, "stmt", path), path + ("stmt",)),
        )


# =============================================================================
# Logging and queueing
# =============================================================================

@dataclass(frozen=True)
class Log:
    """Log the packet; every property is optional."""

    prefix: str | None = None
    group: int | None = None
    snaplen: int | None = None
    queue_threshold: int | None = None
    level: LogLevel | None = None
    flags: frozenset[LogFlag] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, Any] | None:
        return with_optional({}, {
            "prefix": self.prefix,
            "group": self.group,
            "snaplen": self.snaplen,
            "queue-threshold": self.queue_threshold,
            "level": optional_token(self.level),
            "flags": encode_flag_set(self.flags),
        }) or None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Log":
        return cls(
            prefix=opt_str(data, "prefix", path),
            group=opt_int(data, "group", path),
            snaplen=opt_int(data, "snaplen", path),
            queue_threshold=opt_int(data, "queue-threshold", path),
            level=opt_enum(LogLevel, data, "level", path),
            flags=decode_flag_set(LogFlag, data.get("flags"), path + ("flags",)),
        )


@dataclass(frozen=True)
class Queue:
    """Queue the packet to userspace."""

    num: Expression
    flags: frozenset[QueueFlag] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, Any]:
        return with_optional({"num": expression_to_json(self.num)}, {"flags": encode_flag_set(self.flags)})

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Queue":
        return cls(
            num=_expr(data, "num", path),
            flags=decode_flag_set(QueueFlag, data.get("flags"), path + ("flags",)),
        )


# =============================================================================
# Conntrack
# =============================================================================

@dataclass(frozen=True)
class CTHelperRef:
    """Assign the named ct helper to the connection."""

    helper: Expression


@dataclass(frozen=True)
class CTTimeoutRef:
    """Assign the named ct timeout policy."""

    timeout: Expression


@dataclass(frozen=True)
class CTExpectationRef:
    """Assign the named ct expectation."""

    expectation: Expression


@dataclass(frozen=True)
class CTCount:
    """Match on the number of tracked connections."""

    val: Expression
    inv: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional({"val": expression_to_json(self.val)}, {"inv": self.inv})

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "CTCount":
        return cls(val=_expr(data, "val", path), inv=opt_bool(data, "inv", path))


@dataclass(frozen=True)
class SynProxy:
    """Anonymous synproxy; values must match the backend server."""

    mss: int | None = None
    wscale: int | None = None
    flags: frozenset[SynProxyFlag] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, Any] | None:
        return with_optional({}, {
            "mss": self.mss,
            "wscale": self.wscale,
            "flags": encode_flag_set(self.flags),
        }) or None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "SynProxy":
        return cls(
            mss=opt_int(data, "mss", path),
            wscale=opt_int(data, "wscale", path),
            flags=decode_flag_set(SynProxyFlag, data.get("flags"), path + ("flags",)),
        )


@dataclass(frozen=True)
class TProxy:
    """Redirect the packet to a local socket without changing it."""

    port: int
    family: str | None = None
    addr: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional({"port": self.port}, {"family": self.family, "addr": self.addr})

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "TProxy":
        return cls(
            port=req_int(data, "port", path),
            family=opt_str(data, "family", path),
            addr=opt_str(data, "addr", path),
        )


@dataclass(frozen=True)
class XT:
    """Legacy xtables statement.

    The engine does not describe its content, so ``data`` is kept as the
    raw JSON value.
    """

    data: Any = field(default=None, hash=False)


Statement = Union[
    Accept, Drop, Continue, Return, Jump, Goto,
    Match, Counter, CounterRef, Mangle, Quota, QuotaRef, Limit, LimitRef,
    Flow, Fwd, Notrack, Dup, Nat, Reject, SetStatement, MapStatement, Log,
    CTHelperRef, Meter, Queue, VerdictMap, CTCount, CTTimeoutRef,
    CTExpectationRef, XT, SynProxy, TProxy,
]


# =============================================================================
# Union codec
# =============================================================================

def _object_payload(cls: type) -> Callable[[Any, JsonPath], Any]:
    def decode(payload: Any, path: JsonPath) -> Any:
        return cls.from_dict(expect_object(payload, path, _KEY_BY_TYPE[cls]), path)
    return decode


def _optional_payload(cls: type) -> Callable[[Any, JsonPath], Any]:
    def decode(payload: Any, path: JsonPath) -> Any:
        return cls.from_dict(empty_payload(payload, path, _KEY_BY_TYPE[cls]), path)
    return decode


def _nat(kind: NatKind) -> Callable[[Any, JsonPath], Nat]:
    def decode(payload: Any, path: JsonPath) -> Nat:
        return Nat.from_dict(kind, empty_payload(payload, path, kind.value), path)
    return decode


def _quota(payload: Any, path: JsonPath) -> Quota | QuotaRef:
    if isinstance(payload, str):
        return QuotaRef(payload)
    return Quota.from_dict(expect_object(payload, path, "quota"), path)


def _limit(payload: Any, path: JsonPath) -> Limit | LimitRef:
    if isinstance(payload, str):
        return LimitRef(payload)
    return Limit.from_dict(expect_object(payload, path, "limit"), path)


def _notrack(payload: Any, path: JsonPath) -> Notrack:
    empty_payload(payload, path, "notrack")
    return Notrack()


def _xt(payload: Any, path: JsonPath) -> XT:
    return XT(payload)


def _ct_helper(payload: Any, path: JsonPath) -> CTHelperRef:
    return CTHelperRef(expression_from_json(payload, path))


def _ct_timeout(payload: Any, path: JsonPath) -> CTTimeoutRef:
    return CTTimeoutRef(expression_from_json(payload, path))


def _ct_expectation(payload: Any, path: JsonPath) -> CTExpectationRef:
    return CTExpectationRef(expression_from_json(payload, path))


_KEY_BY_TYPE: dict[type, str] = {
    Match: "match",
    Counter: "counter",
    CounterRef: "counter",
    Mangle: "mangle",
    Quota: "quota",
    QuotaRef: "quota",
    Limit: "limit",
    LimitRef: "limit",
    Flow: "flow",
    Fwd: "fwd",
    Notrack: "notrack",
    Dup: "dup",
    Reject: "reject",
    SetStatement: "set",
    MapStatement: "map",
    Log: "log",
    CTHelperRef: "ct helper",
    Meter: "meter",
    Queue: "queue",
    VerdictMap: "vmap",
    CTCount: "ct count",
    CTTimeoutRef: "ct timeout",
    CTExpectationRef: "ct expectation",
    XT: "xt",
    SynProxy: "synproxy",
    TProxy: "tproxy",
}

_DECODERS: dict[str, Callable[[Any, JsonPath], Any]] = {
    "match": _object_payload(Match),
    "counter": counter_from_json,
    "mangle": _object_payload(Mangle),
    "quota": _quota,
    "limit": _limit,
    "flow": _object_payload(Flow),
    "fwd": _optional_payload(Fwd),
    "notrack": _notrack,
    "dup": _object_payload(Dup),
    "snat": _nat(NatKind.SNAT),
    "dnat": _nat(NatKind.DNAT),
    "masquerade": _nat(NatKind.MASQUERADE),
    "redirect": _nat(NatKind.REDIRECT),
    "reject": _optional_payload(Reject),
    "set": _object_payload(SetStatement),
    "map": _object_payload(MapStatement),
    "log": _optional_payload(Log),
    "ct helper": _ct_helper,
    "meter": _object_payload(Meter),
    "queue": _object_payload(Queue),
    "vmap": _object_payload(VerdictMap),
    "ct count": _object_payload(CTCount),
    "ct timeout": _ct_timeout,
    "ct expectation": _ct_expectation,
    "xt": _xt,
    "synproxy": _optional_payload(SynProxy),
    "tproxy": _object_payload(TProxy),
}

STATEMENT_KEYS = frozenset(_DECODERS) | VERDICT_KEYS


def statement_from_json(value: Any, path: JsonPath = ()) -> Statement:
    """Decode a single-key statement object."""
    if not isinstance(value, dict):
        raise DecodeError(f"expected statement object, got {json_type_name(value)}", path)
    key, payload = single_key(value, path, "statement", STATEMENT_KEYS)
    if key in VERDICT_KEYS:
        return verdict_from_json(key, payload, path + (key,))
    return _DECODERS[key](payload, path + (key,))


def statement_to_json(stmt: Statement) -> dict[str, Any]:
    """Encode a statement as its single-key object."""
    if is_verdict(stmt):
        return verdict_to_json(stmt)
    if isinstance(stmt, Nat):
        return {token(stmt.kind): stmt.to_dict()}
    key = _KEY_BY_TYPE.get(type(stmt))
    if key is None:
        raise EncodeError(f"not a statement: {stmt!r}")
    if isinstance(stmt, (Counter, CounterRef)):
        return {key: counter_to_json(stmt)}
    if isinstance(stmt, (QuotaRef, LimitRef)):
        return {key: stmt.name}
    if isinstance(stmt, Notrack):
        return {key: None}
    if isinstance(stmt, XT):
        return {key: stmt.data}
    if isinstance(stmt, CTHelperRef):
        return {key: expression_to_json(stmt.helper)}
    if isinstance(stmt, CTTimeoutRef):
        return {key: expression_to_json(stmt.timeout)}
    if isinstance(stmt, CTExpectationRef):
        return {key: expression_to_json(stmt.expectation)}
    return {key: stmt.to_dict()}


def is_statement(value: Any) -> bool:
    return is_verdict(value) or isinstance(value, Nat) or type(value) in _KEY_BY_TYPE


