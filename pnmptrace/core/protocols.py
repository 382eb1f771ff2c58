"""Discriminator values carried by PNMP trace reports.

Each enum has an ``UNRECOGNIZED`` member so that new values coming from
the producers are routed to an explicit branch instead of falling
through a comparison ladder.
"""

from enum import Enum
from typing import Optional


class _Discriminator(str, Enum):

    @classmethod
    def parse(cls, value: Optional[str]):
        """Map a raw field value onto a member (exact, case sensitive)."""
        for member in cls:
            if member.value == value:
                return member
        return cls.UNRECOGNIZED


class ReportKind(_Discriminator):
    L2_TRACE = "L2Trace"
    UNRECOGNIZED = ""


class Protocol(_Discriminator):
    NETROM = "NET/ROM"
    DATA = "DATA"
    IP = "IP"
    ARP = "ARP"
    UNRECOGNIZED = ""


class L3Type(_Discriminator):
    NETROM = "NetRom"
    ROUTING_INFO = "Routing info"
    ROUTING_POLL = "Routing poll"
    UNRECOGNIZED = ""


class RoutingType(_Discriminator):
    NODES = "NODES"
    INP3 = "INP3"
    UNRECOGNIZED = ""


class L4Type(_Discriminator):
    CONN_REQ = "CONN REQ"
    CONN_REQX = "CONN_REQX"
    CONN_ACK = "CONN ACK"
    CONN_NAK = "CONN NAK"
    DREQ = "DREQ"
    DACK = "DACK"
    RSET = "RSET"
    INFO = "INFO"
    INFO_ACK = "INFO ACK"
    PROT_EXT = "PROT EXT"
    IP = "IP"
    NCMP = "NCMP"
    NDP = "NDP"
    GNET = "GNET"
    NRR_REQUEST = "NRR Request"
    NRR_REPLY = "NRR Reply"
    UNKNOWN = "unknown"
    UNRECOGNIZED = ""


# L4 types that are only labelled, never decoded
NAMED_ONLY_L4 = frozenset({L4Type.IP, L4Type.NCMP, L4Type.NDP, L4Type.GNET})

# INP3 capability flags and the labels they are shown with
INP3_CAPABILITIES = (
    ("isNode", "NODE"),
    ("isBBS", "BBS"),
    ("isPMS", "PMS"),
    ("isXRChat", "XRCHAT"),
    ("isRTChat", "RTCHAT"),
    ("isRMS", "RMS"),
    ("isDXClus", "DXCLUS"),
)
