"""
Tests for the statement model.
"""

import pytest

from nftjson.exceptions import DecodeError, EncodeError, UnknownEnumValue
from nftjson.schema.expressions import (
    CT,
    Accept,
    AnonymousSet,
    Drop,
    Jump,
    Meta,
    PayloadField,
    Prefix,
    Range,
    SetMapping,
)
from nftjson.schema.statements import (
    CTCount,
    CTExpectationRef,
    CTHelperRef,
    CTTimeoutRef,
    STATEMENT_KEYS,
    XT,
    Counter,
    CounterRef,
    Dup,
    Flow,
    Fwd,
    Limit,
    LimitRef,
    Log,
    Mangle,
    MapStatement,
    Match,
    Meter,
    Nat,
    Notrack,
    Queue,
    Quota,
    QuotaRef,
    Reject,
    SetStatement,
    SynProxy,
    TProxy,
    VerdictMap,
    is_statement,
    statement_from_json,
    statement_to_json,
)
from nftjson.schema.types import (
    FwdFamily,
    LogFlag,
    LogLevel,
    MetaKey,
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


def roundtrip(wire):
    decoded = statement_from_json(wire)
    assert statement_to_json(decoded) == wire
    return decoded


class TestVerdicts:

    @pytest.mark.parametrize("wire", [{"accept": None}, {"accept": {}}])
    def test_optional_payload(self, wire):
        stmt = statement_from_json(wire)
        assert stmt == Accept()
        assert statement_to_json(stmt) == {"accept": None}

    def test_jump(self):
        assert roundtrip({"jump": {"target": "tcp_chain"}}) == Jump("tcp_chain")

    def test_every_key_is_dispatchable(self):
        assert {"accept", "drop", "continue", "return", "jump", "goto"} <= STATEMENT_KEYS
        assert {"ct helper", "ct count", "ct timeout", "ct expectation", "vmap"} <= STATEMENT_KEYS


class TestMatch:

    def test_payload_match(self):
        stmt = roundtrip({
            "match": {"op": "==", "left": {"payload": {"protocol": "tcp", "field": "dport"}}, "right": 22}
        })
        assert stmt == Match(PayloadField("tcp", "dport"), 22, Operator.EQ)

    def test_in_anonymous_set(self):
        stmt = roundtrip({
            "match": {"op": "in", "left": {"ct": {"key": "state"}}, "right": {"set": ["established", "related"]}}
        })
        assert stmt.right == AnonymousSet(("established", "related"))
        assert stmt.left == CT("state")

    def test_unknown_operator(self):
        with pytest.raises(UnknownEnumValue) as exc_info:
            statement_from_json({"match": {"op": "=~", "left": 1, "right": 1}})
        assert exc_info.value.path == ("match", "op")

    def test_missing_operand_path(self):
        with pytest.raises(DecodeError) as exc_info:
            statement_from_json({"match": {"op": "==", "left": 1}})
        assert exc_info.value.path == ("match",)


class TestCounterQuotaLimit:

    @pytest.mark.parametrize("payload", [None, {}])
    def test_anonymous_counter_without_values(self, payload):
        stmt = statement_from_json({"counter": payload})
        assert stmt == Counter()
        assert statement_to_json(stmt) == {"counter": None}

    def test_anonymous_counter_with_values(self):
        assert roundtrip({"counter": {"packets": 3, "bytes": 180}}) == Counter(3, 180)

    def test_named_counter(self):
        assert roundtrip({"counter": "http_hits"}) == CounterRef("http_hits")

    def test_quota(self):
        stmt = roundtrip({"quota": {"val": 25, "val_unit": "mbytes", "inv": True}})
        assert stmt == Quota(25, "mbytes", inv=True)
        assert roundtrip({"quota": "monthly"}) == QuotaRef("monthly")

    def test_quota_needs_unit(self):
        with pytest.raises(DecodeError, match="val_unit"):
            statement_from_json({"quota": {"val": 25}})

    def test_limit(self):
        stmt = roundtrip({"limit": {"rate": 400, "per": "minute", "burst": 5}})
        assert stmt == Limit(400, per=NfTimeUnit.MINUTE, burst=5)
        assert roundtrip({"limit": "ssh_rate"}) == LimitRef("ssh_rate")


class TestPacketStatements:

    def test_mangle(self):
        stmt = roundtrip({"mangle": {"key": {"meta": {"key": "mark"}}, "value": 1}})
        assert stmt == Mangle(Meta(MetaKey.MARK), 1)

    def test_flow(self):
        assert roundtrip({"flow": {"op": "add", "flowtable": "@ft"}}) == Flow(SetOp.ADD, "@ft")

    def test_fwd(self):
        stmt = roundtrip({"fwd": {"dev": "eth1", "family": "ip", "addr": "10.0.0.1"}})
        assert stmt == Fwd("eth1", FwdFamily.IP, "10.0.0.1")
        assert statement_to_json(statement_from_json({"fwd": None})) == {"fwd": None}

    def test_notrack(self):
        assert roundtrip({"notrack": None}) == Notrack()

    def test_dup(self):
        assert roundtrip({"dup": {"addr": "10.0.0.2", "dev": "eth0"}}) == Dup("10.0.0.2", "eth0")

    def test_reject(self):
        stmt = roundtrip({"reject": {"type": "icmpx", "expr": "admin-prohibited"}})
        assert stmt == Reject(RejectType.ICMPX, RejectCode.ADMIN_PROHIBITED)
        assert roundtrip({"reject": None}) == Reject()
        assert statement_from_json({"reject": {"type": "tcp reset"}}).type is RejectType.TCP_RESET


class TestNat:

    def test_snat(self):
        stmt = roundtrip({"snat": {"addr": "192.0.2.1", "family": "ip", "port": {"range": [1024, 2048]}}})
        assert stmt == Nat(NatKind.SNAT, "192.0.2.1", NatFamily.IP, Range(1024, 2048))

    def test_dnat_flags(self):
        stmt = statement_from_json({"dnat": {"addr": "10.0.0.2", "flags": "persistent"}})
        assert stmt.flags == {NatFlag.PERSISTENT}
        assert statement_to_json(stmt) == {"dnat": {"addr": "10.0.0.2", "flags": ["persistent"]}}

    @pytest.mark.parametrize("key", ["masquerade", "redirect"])
    def test_payloadless_variants(self, key):
        stmt = statement_from_json({key: None})
        assert stmt == Nat(NatKind(key))
        assert statement_to_json(stmt) == {key: None}

    def test_redirect_port(self):
        stmt = roundtrip({"redirect": {"port": 8080}})
        assert stmt.kind is NatKind.REDIRECT
        assert stmt.port == 8080


class TestSetsAndMaps:

    def test_set_statement(self):
        stmt = roundtrip({
            "set": {"op": "add", "elem": {"payload": {"protocol": "ip", "field": "saddr"}}, "set": "@seen"}
        })
        assert stmt == SetStatement(SetOp.ADD, PayloadField("ip", "saddr"), "@seen")

    def test_set_statement_delete(self):
        assert statement_from_json({"set": {"op": "delete", "elem": "x", "set": "@s"}}).op is SetOp.DELETE

    def test_map_statement(self):
        stmt = roundtrip({"map": {"op": "update", "elem": "a", "data": 1, "map": "@m"}})
        assert stmt == MapStatement(SetOp.UPDATE, "a", 1, "@m")

    def test_vmap(self):
        wire = {"vmap": {
            "key": {"meta": {"key": "iifname"}},
            "data": {"set": [["lo", {"accept": None}], ["eth0", {"jump": {"target": "wan"}}]]},
        }}
        stmt = roundtrip(wire)
        assert stmt == VerdictMap(
            Meta(MetaKey.IIFNAME),
            AnonymousSet((SetMapping("lo", Accept()), SetMapping("eth0", Jump("wan")))),
        )

    def test_meter_nests_a_statement(self):
        wire = {"meter": {
            "name": "flood",
            "key": {"payload": {"protocol": "ip", "field": "saddr"}},
            "stmt": {"limit": {"rate": 10, "per": "second"}},
        }}
        stmt = roundtrip(wire)
        assert stmt == Meter("flood", PayloadField("ip", "saddr"), Limit(10, per=NfTimeUnit.SECOND))

    def test_meter_nested_error_path(self):
        wire = {"meter": {"name": "m", "key": 1, "stmt": {"limit": {"rate": 10, "per": "fortnight"}}}}
        with pytest.raises(UnknownEnumValue) as exc_info:
            statement_from_json(wire)
        assert exc_info.value.path == ("meter", "stmt", "limit", "per")


class TestLogAndQueue:

    def test_log(self):
        stmt = roundtrip({"log": {"prefix": "drop: ", "group": 2, "queue-threshold": 10, "level": "warn"}})
        assert stmt == Log(prefix="drop: ", group=2, queue_threshold=10, level=LogLevel.WARN)

    def test_log_flags_coerced(self):
        stmt = statement_from_json({"log": {"flags": "all"}})
        assert stmt.flags == {LogFlag.ALL}
        assert statement_to_json(stmt) == {"log": {"flags": ["all"]}}

    def test_bare_log(self):
        assert roundtrip({"log": None}) == Log()

    def test_queue_without_flags(self):
        stmt = roundtrip({"queue": {"num": 0}})
        assert stmt == Queue(0)
        assert stmt.flags == frozenset()

    def test_queue_flags(self):
        stmt = roundtrip({"queue": {"num": {"range": [0, 3]}, "flags": ["bypass", "fanout"]}})
        assert stmt.flags == {QueueFlag.BYPASS, QueueFlag.FANOUT}


class TestConntrack:

    def test_named_references(self):
        assert roundtrip({"ct helper": "ftp-standard"}) == CTHelperRef("ftp-standard")
        assert roundtrip({"ct timeout": "aggressive"}) == CTTimeoutRef("aggressive")
        assert roundtrip({"ct expectation": "e_pgsql"}) == CTExpectationRef("e_pgsql")

    def test_ct_count(self):
        assert roundtrip({"ct count": {"val": 20, "inv": True}}) == CTCount(20, True)

    def test_synproxy(self):
        stmt = roundtrip({"synproxy": {"mss": 1460, "wscale": 7, "flags": ["timestamp", "sack-perm"]}})
        assert stmt == SynProxy(1460, 7, frozenset({SynProxyFlag.TIMESTAMP, SynProxyFlag.SACK_PERM}))

    def test_empty_synproxy_encodes_null(self):
        assert statement_to_json(SynProxy()) == {"synproxy": None}
        assert statement_from_json({"synproxy": {}}) == SynProxy()

    def test_tproxy(self):
        assert roundtrip({"tproxy": {"family": "ip", "addr": "127.0.0.1", "port": 9000}}) == TProxy(
            9000, "ip", "127.0.0.1"
        )


class TestXT:

    def test_opaque_payload_kept(self):
        wire = {"xt": {"type": "match", "name": "conntrack"}}
        stmt = roundtrip(wire)
        assert stmt == XT({"type": "match", "name": "conntrack"})

    def test_null_payload(self):
        assert roundtrip({"xt": None}) == XT()


class TestDispatch:

    @pytest.mark.parametrize("wire", [{}, {"accept": None, "counter": None}])
    def test_exclusive(self, wire):
        with pytest.raises(DecodeError, match="exactly one key"):
            statement_from_json(wire)

    def test_unknown_statement(self):
        with pytest.raises(DecodeError, match="unknown statement 'meta'"):
            statement_from_json({"meta": {"key": "mark"}})

    def test_not_an_object(self):
        with pytest.raises(DecodeError, match="expected statement object, got array"):
            statement_from_json([])

    def test_encode_non_statement(self):
        with pytest.raises(EncodeError):
            statement_to_json(Prefix("10.0.0.0", 8))

    def test_drop_from_statement_module(self):
        assert statement_from_json({"drop": None}) == Drop()

    def test_is_statement(self):
        assert is_statement(Drop())
        assert is_statement(Nat(NatKind.MASQUERADE))
        assert is_statement(CounterRef("c"))
        assert not is_statement(Prefix("10.0.0.0", 8))
