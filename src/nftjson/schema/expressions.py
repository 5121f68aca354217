"""
Expression model.

Expressions are the values used inside statements. Immediates are bare
JSON scalars and map to bare Python ``str``, ``int`` and ``bool``; a list
expression is a ``tuple`` of expressions. Everything else is a single-key
object. The union has no discriminator field, so
:func:`expression_from_json` probes shapes in a fixed order:

1. string, 2. integer, 3. boolean, 4. array (list expression),
5. binary operation (``&``, ``|``, ``^``, ``<<``, ``>>``),
6. ``range``, 7. named expressions (``payload``, ``meta``, ``ct``, ...),
8. verdicts (``accept``, ``jump``, ...).

String immediates follow two conventions: ``"@name"`` references a named
set and ``"*"`` is a wildcard.

See libnftables-json(5), EXPRESSIONS.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from dataclasses import dataclass, field
from typing import Any, Union

from nftjson.exceptions import DecodeError, EncodeError, JsonPath
from nftjson.schema.codec import (
    decode_flag_set,
    empty_payload,
    encode_flag_set,
    expect_array,
    expect_object,
    expect_pair,
    json_type_name,
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
from nftjson.schema.types import (
    BinaryOperator,
    CTDir,
    CTFamily,
    FibFlag,
    FibResult,
    MetaKey,
    NgMode,
    OsfTtl,
    PayloadBase,
    RTFamily,
    RTKey,
)

WILDCARD = "*"


def set_reference(name: str) -> str:
    """String immediate referencing the named set ``name``."""
    return f"@{name}"


def is_set_reference(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("@") and len(value) > 1


# =============================================================================
# Verdicts
# =============================================================================
#
# Shared by verdict-map data (expressions) and rule bodies (statements).

@dataclass(frozen=True)
class Accept:
    """Terminate ruleset evaluation and accept the packet."""


@dataclass(frozen=True)
class Drop:
    """Terminate ruleset evaluation and drop the packet."""


@dataclass(frozen=True)
class Continue:
    """Continue with the next rule."""


@dataclass(frozen=True)
class Return:
    """Return from the current chain."""


@dataclass(frozen=True)
class Jump:
    """Continue in ``target`` and come back afterwards."""

    target: str


@dataclass(frozen=True)
class Goto:
    """Continue in ``target`` without coming back."""

    target: str


Verdict = Union[Accept, Drop, Continue, Return, Jump, Goto]

_SIMPLE_VERDICTS: dict[str, type] = {
    "accept": Accept,
    "drop": Drop,
    "continue": Continue,
    "return": Return,
}
_TARGET_VERDICTS: dict[str, type] = {
    "jump": Jump,
    "goto": Goto,
}
VERDICT_KEYS = frozenset(_SIMPLE_VERDICTS) | frozenset(_TARGET_VERDICTS)


def verdict_from_json(key: str, payload: Any, path: JsonPath) -> Verdict:
    """Decode the payload of a verdict key (path points at the payload)."""
    if key in _SIMPLE_VERDICTS:
        empty_payload(payload, path, key)
        return _SIMPLE_VERDICTS[key]()
    if key in _TARGET_VERDICTS:
        data = expect_object(payload, path, key)
        return _TARGET_VERDICTS[key](target=req_str(data, "target", path))
    raise DecodeError(f"unknown verdict {key!r}", path)


def verdict_to_json(verdict: Verdict) -> dict[str, Any]:
    if isinstance(verdict, (Jump, Goto)):
        key = "jump" if isinstance(verdict, Jump) else "goto"
        return {key: {"target": verdict.target}}
    for key, cls in _SIMPLE_VERDICTS.items():
        if type(verdict) is cls:
            return {key: None}
    raise EncodeError(f"not a verdict: {verdict!r}")


def is_verdict(value: Any) -> bool:
    return isinstance(value, (Accept, Drop, Continue, Return, Jump, Goto))


# =============================================================================
# Structural expressions
# =============================================================================

@dataclass(frozen=True)
class BinaryOperation:
    """``{"&": [left, right]}`` and friends."""

    op: BinaryOperator
    left: "Expression"
    right: "Expression"


@dataclass(frozen=True)
class Range:
    """Inclusive range ``{"range": [low, high]}``."""

    low: "Expression"
    high: "Expression"


@dataclass(frozen=True)
class Concat:
    """Concatenation of several expressions."""

    items: tuple["Expression", ...] = ()


@dataclass(frozen=True)
class AnonymousSet:
    """Anonymous set; for mappings the items are :class:`SetMapping`."""

    items: tuple["SetItem", ...] = ()


@dataclass(frozen=True)
class SetMapping:
    """``[key, value]`` item of an anonymous set or map."""

    key: "Expression"
    value: "Expression"


@dataclass(frozen=True)
class SetStatementMapping:
    """``[key, statement]`` item of an anonymous set."""

    key: "Expression"
    statement: Any


# =============================================================================
# Named expressions
# =============================================================================

@dataclass(frozen=True)
class MapExpression:
    """Look ``key`` up in ``data`` (usually an anonymous set of mappings)."""

    key: "Expression"
    data: "Expression"

    def to_dict(self) -> dict[str, Any]:
        return {"key": expression_to_json(self.key), "data": expression_to_json(self.data)}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "MapExpression":
        return cls(
            key=expression_from_json(required(data, "key", path), path + ("key",)),
            data=expression_from_json(required(data, "data", path), path + ("data",)),
        )


@dataclass(frozen=True)
class Prefix:
    """Address prefix, e.g. ``10.0.0.0/8``."""

    addr: "Expression"
    len: int

    def to_dict(self) -> dict[str, Any]:
        return {"addr": expression_to_json(self.addr), "len": self.len}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Prefix":
        return cls(
            addr=expression_from_json(required(data, "addr", path), path + ("addr",)),
            len=req_int(data, "len", path),
        )


@dataclass(frozen=True)
class PayloadField:
    """Reference a header field by name (``tcp dport``)."""

    protocol: str
    field: str

    def to_dict(self) -> dict[str, Any]:
        return {"protocol": self.protocol, "field": self.field}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "PayloadField":
        return cls(protocol=req_str(data, "protocol", path), field=req_str(data, "field", path))


@dataclass(frozen=True)
class PayloadRaw:
    """Reference ``len`` bits at ``offset`` from the ``base`` header."""

    base: PayloadBase
    offset: int
    len: int

    def to_dict(self) -> dict[str, Any]:
        return {"base": token(self.base), "offset": self.offset, "len": self.len}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "PayloadRaw":
        return cls(
            base=req_enum(PayloadBase, data, "base", path),
            offset=req_int(data, "offset", path),
            len=req_int(data, "len", path),
        )


Payload = Union[PayloadField, PayloadRaw]

_PAYLOAD_FIELD_KEYS = ("protocol", "field")
_PAYLOAD_RAW_KEYS = ("base", "offset", "len")


def payload_from_json(value: Any, path: JsonPath) -> Payload:
    """Pick the payload variant whose whole field set is present.

    Both variants present, or one only partially present, is an error.
    """
    data = expect_object(value, path, "payload")
    named = [key for key in _PAYLOAD_FIELD_KEYS if data.get(key) is not None]
    raw = [key for key in _PAYLOAD_RAW_KEYS if data.get(key) is not None]
    if len(named) == len(_PAYLOAD_FIELD_KEYS) and not raw:
        return PayloadField.from_dict(data, path)
    if len(raw) == len(_PAYLOAD_RAW_KEYS) and not named:
        return PayloadRaw.from_dict(data, path)
    present = ", ".join(named + raw) or "none"
    raise DecodeError(
        "payload needs either {protocol, field} or {base, offset, len}, "
        f"got fields: {present}",
        path,
    )


@dataclass(frozen=True)
class Exthdr:
    """IPv6 extension header field; without ``field`` it is an existence check."""

    name: str
    field: str | None = None
    offset: int | None = None  # rt0 only

    def to_dict(self) -> dict[str, Any]:
        return with_optional({"name": self.name}, {"field": self.field, "offset": self.offset})

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Exthdr":
        return cls(
            name=req_str(data, "name", path),
            field=opt_str(data, "field", path),
            offset=opt_int(data, "offset", path),
        )


@dataclass(frozen=True)
class TcpOption:
    """TCP option field; without ``field`` it is an existence check."""

    name: str
    field: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional({"name": self.name}, {"field": self.field})

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "TcpOption":
        return cls(name=req_str(data, "name", path), field=opt_str(data, "field", path))


@dataclass(frozen=True)
class SctpChunk:
    """SCTP chunk field; without ``field`` it is an existence check."""

    name: str
    field: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional({"name": self.name}, {"field": self.field})

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "SctpChunk":
        return cls(name=req_str(data, "name", path), field=opt_str(data, "field", path))


@dataclass(frozen=True)
class Meta:
    key: MetaKey

    def to_dict(self) -> dict[str, Any]:
        return {"key": token(self.key)}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Meta":
        return cls(key=req_enum(MetaKey, data, "key", path))


@dataclass(frozen=True)
class RT:
    """Routing data."""

    key: RTKey
    family: RTFamily | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional({"key": token(self.key)}, {"family": optional_token(self.family)})

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "RT":
        return cls(
            key=req_enum(RTKey, data, "key", path),
            family=opt_enum(RTFamily, data, "family", path),
        )


@dataclass(frozen=True)
class CT:
    """Conntrack data; some keys take no ``dir``."""

    key: str
    family: CTFamily | None = None
    dir: CTDir | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional(
            {"key": self.key},
            {"family": optional_token(self.family), "dir": optional_token(self.dir)},
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "CT":
        return cls(
            key=req_str(data, "key", path),
            family=opt_enum(CTFamily, data, "family", path),
            dir=opt_enum(CTDir, data, "dir", path),
        )


@dataclass(frozen=True)
class Numgen:
    """Number generator returning values below ``mod``."""

    mode: NgMode
    mod: int
    offset: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional({"mode": token(self.mode), "mod": self.mod}, {"offset": self.offset})

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Numgen":
        return cls(
            mode=req_enum(NgMode, data, "mode", path),
            mod=req_int(data, "mod", path),
            offset=opt_int(data, "offset", path),
        )


@dataclass(frozen=True)
class JHash:
    """Jenkins hash of ``expr``."""

    mod: int
    expr: "Expression"
    offset: int | None = None
    seed: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional(
            {"mod": self.mod},
            {"offset": self.offset, "expr": expression_to_json(self.expr), "seed": self.seed},
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "JHash":
        return cls(
            mod=req_int(data, "mod", path),
            expr=expression_from_json(required(data, "expr", path), path + ("expr",)),
            offset=opt_int(data, "offset", path),
            seed=opt_int(data, "seed", path),
        )


@dataclass(frozen=True)
class SymHash:
    """Symmetric hash."""

    mod: int
    offset: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return with_optional({"mod": self.mod}, {"offset": self.offset})

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "SymHash":
        return cls(mod=req_int(data, "mod", path), offset=opt_int(data, "offset", path))


@dataclass(frozen=True)
class Fib:
    """Forwarding information base lookup."""

    result: FibResult
    flags: frozenset[FibFlag] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, Any]:
        return with_optional({"result": token(self.result)}, {"flags": encode_flag_set(self.flags)})

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Fib":
        return cls(
            result=req_enum(FibResult, data, "result", path),
            flags=decode_flag_set(FibFlag, data.get("flags"), path + ("flags",)),
        )


@dataclass(frozen=True)
class Elem:
    """Set element with explicit properties."""

    val: "Expression"
    timeout: int | None = None
    expires: int | None = None
    comment: str | None = None
    counter: Any = None  # statements.Counter or statements.CounterRef

    def to_dict(self) -> dict[str, Any]:
        from nftjson.schema.statements import counter_to_json

        return with_optional(
            {"val": expression_to_json(self.val)},
            {
                "timeout": self.timeout,
                "expires": self.expires,
                "comment": self.comment,
                "counter": None if self.counter is None else (counter_to_json(self.counter) or {}),
            },
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Elem":
        from nftjson.schema.statements import counter_from_json

        counter = None
        if "counter" in data:
            counter = counter_from_json(data["counter"], path + ("counter",))
        return cls(
            val=expression_from_json(required(data, "val", path), path + ("val",)),
            timeout=opt_int(data, "timeout", path),
            expires=opt_int(data, "expires", path),
            comment=opt_str(data, "comment", path),
            counter=counter,
        )


@dataclass(frozen=True)
class Socket:
    key: str

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Socket":
        return cls(key=req_str(data, "key", path))


@dataclass(frozen=True)
class Osf:
    """OS fingerprint; ``key`` is a pf.os signature name or ``"unknown"``."""

    key: str
    ttl: OsfTtl

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "ttl": token(self.ttl)}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: JsonPath = ()) -> "Osf":
        return cls(key=req_str(data, "key", path), ttl=req_enum(OsfTtl, data, "ttl", path))


# Named expressions whose payload is an object, by wire key.
_OBJECT_EXPRESSIONS: dict[str, type] = {
    "map": MapExpression,
    "prefix": Prefix,
    "exthdr": Exthdr,
    "tcp option": TcpOption,
    "sctp chunk": SctpChunk,
    "meta": Meta,
    "rt": RT,
    "ct": CT,
    "numgen": Numgen,
    "jhash": JHash,
    "symhash": SymHash,
    "fib": Fib,
    "elem": Elem,
    "socket": Socket,
    "osf": Osf,
}
_OBJECT_EXPRESSION_KEYS = {cls: key for key, cls in _OBJECT_EXPRESSIONS.items()}

NAMED_EXPRESSION_KEYS = frozenset(_OBJECT_EXPRESSIONS) | {"concat", "set", "payload"}
BINARY_OPERATOR_KEYS = frozenset(op.value for op in BinaryOperator)
EXPRESSION_KEYS = BINARY_OPERATOR_KEYS | {"range"} | NAMED_EXPRESSION_KEYS | VERDICT_KEYS

Expression = Union[
    str,
    int,
    bool,
    tuple,
    BinaryOperation,
    Range,
    Concat,
    AnonymousSet,
    MapExpression,
    Prefix,
    PayloadField,
    PayloadRaw,
    Exthdr,
    TcpOption,
    SctpChunk,
    Meta,
    RT,
    CT,
    Numgen,
    JHash,
    SymHash,
    Fib,
    Elem,
    Socket,
    Osf,
    Accept,
    Drop,
    Continue,
    Return,
    Jump,
    Goto,
]

SetItem = Union[Expression, SetMapping, SetStatementMapping]


# =============================================================================
# Union codecs
# =============================================================================

def expression_from_json(value: Any, path: JsonPath = ()) -> Expression:
    """Decode an expression, probing shapes in precedence order."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, list):
        return tuple(expression_from_json(item, path + (index,)) for index, item in enumerate(value))
    if not isinstance(value, dict):
        raise DecodeError(f"expected expression, got {json_type_name(value)}", path)

    key, payload = single_key(value, path, "expression")
    inner = path + (key,)

    if key in BINARY_OPERATOR_KEYS:
        left, right = expect_pair(payload, inner, "binary operation")
        return BinaryOperation(
            op=BinaryOperator(key),
            left=expression_from_json(left, inner + (0,)),
            right=expression_from_json(right, inner + (1,)),
        )
    if key == "range":
        low, high = expect_pair(payload, inner, "range")
        return Range(
            low=expression_from_json(low, inner + (0,)),
            high=expression_from_json(high, inner + (1,)),
        )
    if key == "concat":
        items = expect_array(payload, inner, "concat array")
        return Concat(tuple(expression_from_json(item, inner + (i,)) for i, item in enumerate(items)))
    if key == "set":
        items = expect_array(payload, inner, "set array")
        return AnonymousSet(tuple(set_item_from_json(item, inner + (i,)) for i, item in enumerate(items)))
    if key == "payload":
        return payload_from_json(payload, inner)
    if key in _OBJECT_EXPRESSIONS:
        data = expect_object(payload, inner, key)
        return _OBJECT_EXPRESSIONS[key].from_dict(data, inner)
    if key in VERDICT_KEYS:
        return verdict_from_json(key, payload, inner)
    raise DecodeError(f"unknown expression {key!r}", path)


def expression_to_json(expr: Expression) -> Any:
    """Encode an expression to its wire value."""
    if isinstance(expr, (str, bool, int)):
        return getattr(expr, "value", expr)
    if isinstance(expr, (tuple, list)):
        return [expression_to_json(item) for item in expr]
    if isinstance(expr, BinaryOperation):
        return {token(expr.op): [expression_to_json(expr.left), expression_to_json(expr.right)]}
    if isinstance(expr, Range):
        return {"range": [expression_to_json(expr.low), expression_to_json(expr.high)]}
    if isinstance(expr, Concat):
        return {"concat": [expression_to_json(item) for item in expr.items]}
    if isinstance(expr, AnonymousSet):
        return {"set": [set_item_to_json(item) for item in expr.items]}
    if isinstance(expr, (PayloadField, PayloadRaw)):
        return {"payload": expr.to_dict()}
    key = _OBJECT_EXPRESSION_KEYS.get(type(expr))
    if key is not None:
        return {key: expr.to_dict()}
    if is_verdict(expr):
        return verdict_to_json(expr)
    raise EncodeError(f"not an expression: {expr!r}")


def set_item_from_json(value: Any, path: JsonPath = ()) -> SetItem:
    """Decode an anonymous set item.

    A 2-element array is a mapping. Its second element is a statement when
    its single key names a statement and not an expression, otherwise an
    expression. Any other value is a plain element.
    """
    if isinstance(value, list) and len(value) == 2:
        from nftjson.schema.statements import STATEMENT_KEYS, statement_from_json

        key = expression_from_json(value[0], path + (0,))
        second = value[1]
        if isinstance(second, dict) and len(second) == 1:
            name = next(iter(second))
            if name in STATEMENT_KEYS and name not in EXPRESSION_KEYS:
                return SetStatementMapping(key, statement_from_json(second, path + (1,)))
        return SetMapping(key, expression_from_json(second, path + (1,)))
    return expression_from_json(value, path)


def set_item_to_json(item: SetItem) -> Any:
    if isinstance(item, SetMapping):
        return [expression_to_json(item.key), expression_to_json(item.value)]
    if isinstance(item, SetStatementMapping):
        from nftjson.schema.statements import statement_to_json

        return [expression_to_json(item.key), statement_to_json(item.statement)]
    return expression_to_json(item)
