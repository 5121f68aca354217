"""
Closed vocabularies of the nftables JSON schema.

Every enumerator's value is its wire token. Decoding goes through
:func:`nftjson.schema.codec.decode_enum`, which rejects tokens outside the
set; encoding is ``member.value``.

See libnftables-json(5).

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from enum import Enum


# =============================================================================
# Ruleset identity
# =============================================================================

class NfFamily(str, Enum):
    """Address families."""

    IP = "ip"
    IP6 = "ip6"
    INET = "inet"
    ARP = "arp"
    BRIDGE = "bridge"
    NETDEV = "netdev"


class NfChainType(str, Enum):
    """Base chain types."""

    FILTER = "filter"
    ROUTE = "route"
    NAT = "nat"


class NfChainPolicy(str, Enum):
    """Base chain policies."""

    ACCEPT = "accept"
    DROP = "drop"


class NfHook(str, Enum):
    """Netfilter hooks."""

    INGRESS = "ingress"
    PREROUTING = "prerouting"
    FORWARD = "forward"
    INPUT = "input"
    OUTPUT = "output"
    POSTROUTING = "postrouting"
    EGRESS = "egress"


class NfTimeUnit(str, Enum):
    """Time units used by limits."""

    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"


# =============================================================================
# Sets and maps
# =============================================================================

class SetType(str, Enum):
    """Data types of set keys and map values."""

    IPV4_ADDR = "ipv4_addr"
    IPV6_ADDR = "ipv6_addr"
    ETHER_ADDR = "ether_addr"
    INET_PROTO = "inet_proto"
    INET_SERVICE = "inet_service"
    MARK = "mark"
    IFNAME = "ifname"
    VERDICT = "verdict"


class SetPolicy(str, Enum):
    PERFORMANCE = "performance"
    MEMORY = "memory"


class SetFlag(str, Enum):
    CONSTANT = "constant"
    INTERVAL = "interval"
    TIMEOUT = "timeout"
    DYNAMIC = "dynamic"


class SetOp(str, Enum):
    """Operations of the dynamic set/map and flow statements."""

    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


class LimitUnit(str, Enum):
    PACKETS = "packets"
    BYTES = "bytes"


# =============================================================================
# Conntrack objects
# =============================================================================

class CTHProto(str, Enum):
    """Layer 4 protocols of ct helper, timeout and expectation objects."""

    TCP = "tcp"
    UDP = "udp"
    DCCP = "dccp"
    SCTP = "sctp"
    GRE = "gre"
    ICMPV6 = "icmpv6"
    ICMP = "icmp"
    GENERIC = "generic"


class SynProxyFlag(str, Enum):
    TIMESTAMP = "timestamp"
    SACK_PERM = "sack-perm"


# =============================================================================
# Expressions
# =============================================================================

class BinaryOperator(str, Enum):
    AND = "&"
    OR = "|"
    XOR = "^"
    LSHIFT = "<<"
    RSHIFT = ">>"


class PayloadBase(str, Enum):
    """Reference points of raw payload expressions."""

    LL = "ll"  # link layer
    NH = "nh"  # network header
    TH = "th"  # transport header
    IH = "ih"  # inner header, kernel 6.2+


class MetaKey(str, Enum):
    """Packet meta data keys."""

    # packet info
    PKTTYPE = "pkttype"
    LENGTH = "length"
    PROTOCOL = "protocol"
    NFPROTO = "nfproto"
    L4PROTO = "l4proto"
    # interfaces
    IIF = "iif"
    IIFNAME = "iifname"
    IIFTYPE = "iiftype"
    IIFKIND = "iifkind"
    IIFGROUP = "iifgroup"
    OIF = "oif"
    OIFNAME = "oifname"
    OIFTYPE = "oiftype"
    OIFKIND = "oifkind"
    OIFGROUP = "oifgroup"
    IBRIDGENAME = "ibridgename"
    OBRIDGENAME = "obridgename"
    IBRIPORT = "ibriport"
    OBRIPORT = "obriport"
    # mark, routing class and realm
    MARK = "mark"
    PRIORITY = "priority"
    RTCLASSID = "rtclassid"
    # socket owner
    SKUID = "skuid"
    SKGID = "skgid"
    # security selectors
    CPU = "cpu"
    CGROUP = "cgroup"
    SECPATH = "secpath"
    # misc
    RANDOM = "random"
    NFTRACE = "nftrace"
    TIME = "time"
    DAY = "day"
    HOUR = "hour"


class RTKey(str, Enum):
    CLASSID = "classid"
    NEXTHOP = "nexthop"
    MTU = "mtu"


class RTFamily(str, Enum):
    IP = "ip"
    IP6 = "ip6"


class CTFamily(str, Enum):
    IP = "ip"
    IP6 = "ip6"


class CTDir(str, Enum):
    ORIGINAL = "original"
    REPLY = "reply"


class NgMode(str, Enum):
    """Number generator modes."""

    INC = "inc"
    RANDOM = "random"


class FibResult(str, Enum):
    OIF = "oif"
    OIFNAME = "oifname"
    TYPE = "type"


class FibFlag(str, Enum):
    SADDR = "saddr"
    DADDR = "daddr"
    MARK = "mark"
    IIF = "iif"
    OIF = "oif"


class OsfTtl(str, Enum):
    LOOSE = "loose"
    SKIP = "skip"


# =============================================================================
# Statements
# =============================================================================

class Operator(str, Enum):
    """Match statement operators."""

    AND = "&"
    OR = "|"
    XOR = "^"
    LSHIFT = "<<"
    RSHIFT = ">>"
    EQ = "=="
    NEQ = "!="
    LT = "<"
    GT = ">"
    LEQ = "<="
    GEQ = ">="
    IN = "in"


class NatKind(str, Enum):
    """The four NAT statements share one payload shape."""

    SNAT = "snat"
    DNAT = "dnat"
    MASQUERADE = "masquerade"
    REDIRECT = "redirect"


class NatFamily(str, Enum):
    IP = "ip"
    IP6 = "ip6"


class NatFlag(str, Enum):
    RANDOM = "random"
    FULLY_RANDOM = "fully-random"
    PERSISTENT = "persistent"


class FwdFamily(str, Enum):
    IP = "ip"
    IP6 = "ip6"


class RejectType(str, Enum):
    TCP_RESET = "tcp reset"
    ICMPX = "icmpx"
    ICMP = "icmp"
    ICMPV6 = "icmpv6"


class RejectCode(str, Enum):
    """ICMP codes to reject with."""

    ADMIN_PROHIBITED = "admin-prohibited"  # icmpx, icmp, icmpv6
    PORT_UNREACHABLE = "port-unreachable"  # icmpx, icmp, icmpv6
    NO_ROUTE = "no-route"  # icmpx, icmp, icmpv6
    HOST_UNREACHABLE = "host-unreachable"  # icmpx, icmp, icmpv6
    NET_UNREACHABLE = "net-unreachable"  # icmp
    PROT_UNREACHABLE = "prot-unreachable"  # icmp
    NET_PROHIBITED = "net-prohibited"  # icmp
    HOST_PROHIBITED = "host-prohibited"  # icmp
    ADDR_UNREACHABLE = "addr-unreachable"  # icmpv6


class LogLevel(str, Enum):
    EMERG = "emerg"
    ALERT = "alert"
    CRIT = "crit"
    ERR = "err"
    WARN = "warn"
    NOTICE = "notice"
    INFO = "info"
    DEBUG = "debug"
    AUDIT = "audit"


class LogFlag(str, Enum):
    TCP_SEQUENCE = "tcp sequence"
    TCP_OPTIONS = "tcp options"
    IP_OPTIONS = "ip options"
    SKUID = "skuid"
    ETHER = "ether"
    ALL = "all"


class QueueFlag(str, Enum):
    BYPASS = "bypass"
    FANOUT = "fanout"


# =============================================================================
# Commands
# =============================================================================

class CommandVerb(str, Enum):
    """Verbs of input documents."""

    ADD = "add"
    REPLACE = "replace"  # rule only
    CREATE = "create"
    INSERT = "insert"
    DELETE = "delete"
    LIST = "list"
    RESET = "reset"
    FLUSH = "flush"
    RENAME = "rename"  # chain only
