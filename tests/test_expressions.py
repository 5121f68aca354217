"""
Tests for the expression model: shape probing, named expressions and set items.
"""

import pytest

from nftjson.exceptions import DecodeError, EncodeError, UnknownEnumValue
from nftjson.schema.expressions import (
    CT,
    RT,
    WILDCARD,
    Accept,
    AnonymousSet,
    BinaryOperation,
    Concat,
    Drop,
    Elem,
    Exthdr,
    Fib,
    Goto,
    JHash,
    Jump,
    MapExpression,
    Meta,
    Numgen,
    Osf,
    PayloadField,
    PayloadRaw,
    Prefix,
    Range,
    SctpChunk,
    SetMapping,
    SetStatementMapping,
    Socket,
    SymHash,
    TcpOption,
    expression_from_json,
    expression_to_json,
    is_set_reference,
    set_item_from_json,
    set_item_to_json,
    set_reference,
)
from nftjson.schema.statements import Counter, CounterRef, Limit
from nftjson.schema.types import (
    BinaryOperator,
    CTDir,
    FibFlag,
    FibResult,
    MetaKey,
    NgMode,
    OsfTtl,
    PayloadBase,
    RTKey,
)


def roundtrip(wire):
    decoded = expression_from_json(wire)
    assert expression_to_json(decoded) == wire
    return decoded


class TestImmediates:

    def test_string(self):
        assert expression_from_json("eth0") == "eth0"

    def test_integer(self):
        value = expression_from_json(22)
        assert value == 22 and type(value) is int

    def test_boolean_is_not_integer(self):
        value = expression_from_json(True)
        assert value is True

    def test_list(self):
        assert expression_from_json(["a", 1, False]) == ("a", 1, False)
        assert expression_to_json(("a", 1)) == ["a", 1]

    def test_set_reference_convention(self):
        assert set_reference("blocked") == "@blocked"
        assert is_set_reference("@blocked")
        assert not is_set_reference("@")
        assert not is_set_reference(WILDCARD)
        assert expression_from_json("@blocked") == "@blocked"

    @pytest.mark.parametrize("value", [None, 1.5])
    def test_unsupported_json_types(self, value):
        with pytest.raises(DecodeError, match="expected expression"):
            expression_from_json(value)

    def test_enum_member_encodes_as_token(self):
        assert expression_to_json(MetaKey.MARK) == "mark"


class TestStructural:

    def test_binary_operation(self):
        value = roundtrip({"&": [{"meta": {"key": "mark"}}, 255]})
        assert value == BinaryOperation(BinaryOperator.AND, Meta(MetaKey.MARK), 255)

    def test_binary_operation_arity(self):
        with pytest.raises(DecodeError) as exc_info:
            expression_from_json({"<<": [1]})
        assert exc_info.value.path == ("<<",)

    def test_range(self):
        assert roundtrip({"range": [1024, 65535]}) == Range(1024, 65535)

    @pytest.mark.parametrize("items", [[1], [1, 2, 3], []])
    def test_range_arity(self, items):
        with pytest.raises(DecodeError, match="exactly 2 elements"):
            expression_from_json({"range": items})

    def test_concat(self):
        value = roundtrip({"concat": ["10.0.0.1", 80]})
        assert value == Concat(("10.0.0.1", 80))

    def test_anonymous_set(self):
        value = roundtrip({"set": [22, {"range": [8000, 8080]}]})
        assert value == AnonymousSet((22, Range(8000, 8080)))

    def test_two_keys_rejected(self):
        with pytest.raises(DecodeError, match="exactly one key"):
            expression_from_json({"meta": {"key": "mark"}, "ct": {"key": "state"}})

    def test_unknown_key(self):
        with pytest.raises(DecodeError, match="unknown expression 'bogus'"):
            expression_from_json({"bogus": {}})


class TestPayload:

    def test_named_field(self):
        value = roundtrip({"payload": {"protocol": "tcp", "field": "dport"}})
        assert value == PayloadField("tcp", "dport")

    def test_raw_window(self):
        value = roundtrip({"payload": {"base": "th", "offset": 16, "len": 16}})
        assert value == PayloadRaw(PayloadBase.TH, 16, 16)

    def test_partial_field_set_is_an_error(self):
        with pytest.raises(DecodeError, match="payload needs either"):
            expression_from_json({"payload": {"protocol": "tcp"}})

    def test_mixed_field_sets_are_an_error(self):
        with pytest.raises(DecodeError, match="got fields: protocol, field, base"):
            expression_from_json({"payload": {"protocol": "tcp", "field": "dport", "base": "th"}})

    def test_unknown_base(self):
        with pytest.raises(UnknownEnumValue) as exc_info:
            expression_from_json({"payload": {"base": "xx", "offset": 0, "len": 8}})
        assert exc_info.value.path == ("payload", "base")


class TestNamedExpressions:

    def test_map(self):
        wire = {"map": {"key": {"meta": {"key": "iifname"}}, "data": {"set": [["eth0", 1]]}}}
        value = roundtrip(wire)
        assert value == MapExpression(
            Meta(MetaKey.IIFNAME), AnonymousSet((SetMapping("eth0", 1),))
        )

    def test_prefix(self):
        assert roundtrip({"prefix": {"addr": "10.0.0.0", "len": 8}}) == Prefix("10.0.0.0", 8)

    def test_exthdr_optional_fields_omitted(self):
        assert roundtrip({"exthdr": {"name": "frag"}}) == Exthdr("frag")
        assert roundtrip({"exthdr": {"name": "rt0", "field": "addr", "offset": 1}}) == Exthdr(
            "rt0", "addr", 1
        )

    def test_tcp_option_and_sctp_chunk(self):
        assert roundtrip({"tcp option": {"name": "maxseg", "field": "size"}}) == TcpOption(
            "maxseg", "size"
        )
        assert roundtrip({"sctp chunk": {"name": "data"}}) == SctpChunk("data")

    def test_meta_time_keys(self):
        assert roundtrip({"meta": {"key": "hour"}}) == Meta(MetaKey.HOUR)

    def test_rt(self):
        assert roundtrip({"rt": {"key": "nexthop", "family": "ip"}}).key is RTKey.NEXTHOP

    def test_ct(self):
        value = roundtrip({"ct": {"key": "saddr", "family": "ip", "dir": "original"}})
        assert isinstance(value, CT)
        assert value.dir is CTDir.ORIGINAL
        assert roundtrip({"ct": {"key": "state"}}) == CT("state")

    def test_numgen_and_hashes(self):
        assert roundtrip({"numgen": {"mode": "inc", "mod": 2}}) == Numgen(NgMode.INC, 2)
        value = roundtrip({"jhash": {"mod": 4, "expr": {"payload": {"protocol": "ip", "field": "saddr"}}, "seed": 1}})
        assert value == JHash(4, PayloadField("ip", "saddr"), seed=1)
        assert roundtrip({"symhash": {"mod": 2, "offset": 100}}) == SymHash(2, 100)

    def test_fib_flags_coerced(self):
        value = expression_from_json({"fib": {"result": "oif", "flags": "daddr"}})
        assert value == Fib(FibResult.OIF, frozenset({FibFlag.DADDR}))
        assert expression_to_json(value) == {"fib": {"result": "oif", "flags": ["daddr"]}}

    def test_socket_and_osf(self):
        assert roundtrip({"socket": {"key": "transparent"}}) == Socket("transparent")
        assert roundtrip({"osf": {"key": "Linux", "ttl": "loose"}}) == Osf("Linux", OsfTtl.LOOSE)

    def test_elem_with_counter(self):
        wire = {"elem": {"val": "10.0.0.1", "timeout": 60, "counter": {"packets": 1, "bytes": 60}}}
        value = roundtrip(wire)
        assert value == Elem("10.0.0.1", timeout=60, counter=Counter(packets=1, bytes=60))

    def test_elem_with_empty_counter_keeps_counter(self):
        value = Elem("10.0.0.1", counter=Counter())
        wire = expression_to_json(value)
        assert wire == {"elem": {"val": "10.0.0.1", "counter": {}}}
        assert expression_from_json(wire) == value

    def test_elem_with_named_counter(self):
        value = roundtrip({"elem": {"val": 22, "counter": "ssh"}})
        assert value.counter == CounterRef("ssh")

    def test_missing_required_field_names_parent(self):
        with pytest.raises(DecodeError) as exc_info:
            expression_from_json({"prefix": {"addr": "10.0.0.0"}})
        assert exc_info.value.path == ("prefix",)
        assert "missing required field 'len'" in str(exc_info.value)


class TestVerdictExpressions:

    @pytest.mark.parametrize("payload", [None, {}])
    def test_accept_payload_shapes(self, payload):
        assert expression_from_json({"accept": payload}) == Accept()

    def test_accept_encodes_null(self):
        assert expression_to_json(Accept()) == {"accept": None}

    def test_jump_requires_target(self):
        assert roundtrip({"jump": {"target": "web"}}) == Jump("web")
        with pytest.raises(DecodeError, match="missing required field 'target'"):
            expression_from_json({"goto": {}})
        with pytest.raises(DecodeError):
            expression_from_json({"jump": None})

    def test_goto(self):
        assert roundtrip({"goto": {"target": "out"}}) == Goto("out")


class TestSetItems:

    def test_plain_element(self):
        assert set_item_from_json("10.0.0.1") == "10.0.0.1"

    def test_value_mapping(self):
        assert set_item_from_json([22, "ssh"]) == SetMapping(22, "ssh")
        assert set_item_to_json(SetMapping(22, "ssh")) == [22, "ssh"]

    def test_verdict_mapping_stays_an_expression(self):
        assert set_item_from_json(["10.0.0.1", {"drop": None}]) == SetMapping("10.0.0.1", Drop())

    def test_statement_mapping(self):
        item = set_item_from_json(["10.0.0.1", {"limit": {"rate": 10, "per": "second"}}])
        assert isinstance(item, SetStatementMapping)
        assert item.key == "10.0.0.1"
        assert isinstance(item.statement, Limit)
        assert set_item_to_json(item) == ["10.0.0.1", {"limit": {"rate": 10, "per": "second"}}]

    def test_other_arrays_are_list_elements(self):
        assert set_item_from_json([1, 2, 3]) == (1, 2, 3)

    def test_two_element_list_expression_reads_back_as_mapping(self):
        encoded = set_item_to_json((1, 2))
        assert set_item_from_json(encoded) == SetMapping(1, 2)


class TestEncodeErrors:

    def test_not_an_expression(self):
        with pytest.raises(EncodeError):
            expression_to_json(object())

    def test_float_has_no_wire_form(self):
        with pytest.raises(EncodeError):
            expression_to_json(1.5)
