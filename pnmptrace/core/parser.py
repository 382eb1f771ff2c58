import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import TraceConfig, TraceFlags
from .export import MARGIN, TraceWriter, select_color
from .filters import FrameFilter, TraceContext, atoi
from .jsonscan import find_array, find_value, get_value, iter_elements
from .protocols import (
    INP3_CAPABILITIES,
    NAMED_ONLY_L4,
    L3Type,
    L4Type,
    Protocol,
    ReportKind,
    RoutingType,
)

logger = logging.getLogger(__name__)

# Unix times at or below this are treated as unset
MIN_UNIX_TIME = 18000


class TraceDecoder:
    """
    Turns PNMP L2Trace reports into packet trace lines.

    Each report is filtered, then traced from the AX.25 header down
    through whichever upper layers its protocol id announces.
    """

    def __init__(self, config: TraceConfig, writer: TraceWriter):
        self.config = config
        self.writer = writer
        self.filter = FrameFilter(config)
        self.stats = {
            'total_frames': 0,
            'displayed': 0,
            'dropped': {'kind': 0, 'mandatory': 0, 'filtered': 0},
            'protocols': {},
        }

    def _on(self, flag: TraceFlags) -> bool:
        return self.config.enabled(flag)

    def _out(self, text: str) -> int:
        return self.writer.write(text)

    def _warn(self, text: str) -> None:
        if self._on(TraceFlags.WARNINGS):
            self._out(text)

    def _diagnose(self, text: str) -> None:
        # Dropped reports are noted on the display, never in the capture file
        if self._on(TraceFlags.WARNINGS):
            self.writer.write_notice(text)

    def process(self, text: str) -> bool:
        """
        Filter and trace one serialised report.

        Args:
            text: Object text as produced by the framer

        Returns:
            True if a trace was written, False if the report was dropped
        """
        self.stats['total_frames'] += 1

        kind = get_value(text, "@type", 80)
        if kind is None:
            self._diagnose("[missing '@type']\n")
            return self._drop('kind', "no report kind")

        if ReportKind.parse(kind) is not ReportKind.L2_TRACE:
            return self._drop('kind', f"report kind {kind!r}")

        ctx = self._extract(text)
        if ctx is None:
            self._diagnose("[Mandatory field missing]\n")
            return self._drop('mandatory', "mandatory field missing")

        if not self.filter.apply(ctx):
            return self._drop('filtered', "filtered")

        self.writer.begin_frame()
        self._trace_l2(ctx)
        self.writer.end_frame()

        self.stats['displayed'] += 1
        if ctx.protocol:
            protocols = self.stats['protocols']
            protocols[ctx.protocol] = protocols.get(ctx.protocol, 0) + 1
        return True

    def _drop(self, reason: str, detail: str) -> bool:
        self.stats['dropped'][reason] += 1
        logger.debug(f"Dropped report: {detail}")
        return False

    @staticmethod
    def _extract(text: str) -> Optional[TraceContext]:
        mandatory = [
            get_value(text, "reportFrom", 15),
            get_value(text, "port", 15),
            get_value(text, "srce", 15),
            get_value(text, "dest", 15),
            get_value(text, "l2Type", 7),
        ]
        if any(value is None for value in mandatory):
            return None

        reporter, port, source, destination, frame_type = mandatory
        return TraceContext(
            text=text,
            reporter=reporter,
            port=port,
            source=source,
            destination=destination,
            frame_type=frame_type,
            direction=get_value(text, "dirn", 4) or "",
            is_rf=get_value(text, "isRF", 4) or "",
            protocol=get_value(text, "ptcl", 7) or "",
        )

    def _trace_color(self, ctx: TraceContext) -> None:
        color = select_color(ctx.is_rf, ctx.direction)
        # Colour codes make capture files hard to read, so only on request
        if self._on(TraceFlags.COLOR2FILE):
            self._out(color)
        else:
            self.writer.write_display(color)

    def _trace_timestamp(self, text: str) -> None:
        stamp = get_value(text, "time", 20)
        when = datetime.now(timezone.utc)
        if stamp is not None:
            try:
                when = datetime.fromtimestamp(atoi(stamp), tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                logger.debug(f"Unusable report time {stamp!r}, using clock")
        self._out(when.strftime("%H:%M:%S "))

    def _trace_metadata(self, ctx: TraceContext) -> None:
        if self._on(TraceFlags.HDRLIN):
            self._out(f"{ctx.reporter} port {ctx.port}")
            if ctx.is_rf:
                self._out(" (RF)" if ctx.is_rf[0] == "t" else " (Non-RF)")
            if ctx.direction:
                self._out(f" {ctx.direction}")
            self._out(":\n  ")
        else:
            dirn = ctx.direction[0].upper() if ctx.direction else " "
            self._out(f"{ctx.reporter}({ctx.port}){dirn} ")

    def _trace_l2(self, ctx: TraceContext) -> None:
        text = ctx.text

        if self._on(TraceFlags.COLOR):
            self._trace_color(ctx)

        if self._on(TraceFlags.JSON):
            self._out(f"{text}\n")

        if self._on(TraceFlags.LBRK):
            self._out("\n")

        if self._on(TraceFlags.STAMP):
            self._trace_timestamp(text)

        self._trace_metadata(ctx)

        self._out(f"{ctx.source}>{ctx.destination}<{ctx.frame_type}")

        # Which of these are present varies with the frame type
        for name, prefix, max_len in (("cr", " ", 2), ("pf", " ", 2),
                                      ("rseq", " R", 3), ("tseq", " S", 3)):
            value = get_value(text, name, max_len)
            if value is not None:
                self._out(f"{prefix}{value}")
        self._out(">")

        ilen = get_value(text, "ilen", 10)
        if ilen is not None:
            self._out(f" ilen={ilen}")
        pid = get_value(text, "pid", 10)
        if pid is not None:
            self._out(f" pid={pid}")

        if not ctx.protocol:
            return
        self._out(f" {ctx.protocol}")

        protocol = Protocol.parse(ctx.protocol)
        if protocol is Protocol.NETROM:
            self._trace_netrom(text)
        elif protocol is Protocol.DATA:
            self._trace_data(text)
        elif protocol is Protocol.IP:
            self._trace_ip(text)
        elif protocol is Protocol.ARP:
            self._trace_arp(text)

    def _trace_data(self, text: str) -> None:
        # "info" is only present in UI frames, "icrc" only in I frames
        info = get_value(text, "info", 1023)
        if info is not None:
            self._out(f":{MARGIN}{info}")
            return

        crc = get_value(text, "icrc", 8)
        if crc is not None:
            self._out(f" CRC={crc}")

    def _trace_ip(self, text: str) -> None:
        """Trace the main IP header fields, but not the payload."""
        if not self._on(TraceFlags.IP):
            return

        # Older software doesn't include these fields
        src = get_value(text, "ipFrom", 15)
        dst = get_value(text, "ipTo", 15)
        if src is None or dst is None:
            return

        self.writer.margin(f"IP: {src} > {dst}")
        for name, label, max_len in (("ipLen", " iplen=", 6), ("ipTTL", " ttl=", 3),
                                     ("ipID", " id=", 6), ("ipPtcl", " ptcl=", 6),
                                     ("ipProto", " ", 8)):
            value = get_value(text, name, max_len)
            if value is not None:
                self._out(f"{label}{value}")

    def _trace_arp(self, text: str) -> None:
        if not self._on(TraceFlags.ARP):
            return

        # Older software doesn't include these fields
        op = get_value(text, "arpOp")
        if op is None:
            return

        self.writer.margin(f"ARP {op}")
        for name, label in (("arpHwType", " hwtype="), ("arpHwLen", " hwlen="),
                            ("arpPtcl", " prot="), ("arpSndAddr", f"{MARGIN}snd="),
                            ("arpTgtAddr", " tgt="), ("arpSndHw", " snd_hw="),
                            ("arpTgtHw", " tgt_hw=")):
            value = get_value(text, name)
            if value is not None:
                self._out(f"{label}{value}")

    def _trace_netrom(self, text: str) -> None:
        if not self._on(TraceFlags.NETROM):
            return

        raw = get_value(text, "l3Type")
        if raw is None:
            self._warn(" [missing 'l3Type']")
            return

        l3type = L3Type.parse(raw)
        if l3type is L3Type.NETROM:
            self._trace_netrom_l3(text)
        elif l3type is L3Type.ROUTING_INFO:
            self._trace_routing_info(text)
        elif l3type is L3Type.ROUTING_POLL:
            self._trace_routing_poll(text)
        else:
            self._warn(f" [unknown 'l3type': '{raw}']")

    def _trace_netrom_l3(self, text: str) -> None:
        """Show the L3 source, destination and TTL, then layer 4."""
        src = get_value(text, "l3src", 10)
        if src is not None:
            self.writer.margin(f"NTRM: {src}")

        dst = get_value(text, "l3dst", 10)
        if dst is not None:
            self._out(f" to {dst}")

        ttl = get_value(text, "ttl", 8)
        if ttl is not None:
            self._out(f" ttl={ttl}")

        if dst == "L3RTT":
            self._trace_l3rtt(text)
        else:
            self._trace_netrom_l4(text)

    def _trace_l3rtt(self, text: str) -> None:
        """
        L3RTT looks like an L4 INFO frame with circuit and sequence
        numbers all zero, but it belongs to layer 3.
        """
        paylen = get_value(text, "paylen", 8)
        if paylen is not None:
            self._out(f" ilen={paylen}")

        if not self._on(TraceFlags.L3RTT):
            return

        payload = get_value(text, "payload", 511)
        if payload is not None:
            self._out(f":{MARGIN}{payload}")

    def _trace_routing_info(self, text: str) -> None:
        raw = get_value(text, "type", 15)
        if raw is None:
            self._warn(" [missing 'type']")
            return

        kind = RoutingType.parse(raw)
        if kind is RoutingType.NODES:
            self._trace_nodes(text)
        elif kind is RoutingType.INP3:
            self._trace_inp3(text)
        else:
            self._warn(f" [unknown 'type' '{raw}']")

    def _trace_routing_poll(self, text: str) -> None:
        """Routing polls carry nothing worth showing."""

    def _trace_nodes(self, text: str) -> None:
        if not self._on(TraceFlags.NODES):
            self._out(" NODES Broadcast")
            return

        found = find_value(text, "fromAlias", 6)
        if found is None:
            self._warn(" [missing 'fromAlias']")
            return
        alias, after_alias = found

        self.writer.margin(f"NODES Broadcast from {alias}:")

        # The "NODES" type value also matches the key "nodes", so the
        # array is searched for after the alias
        array = find_array(text, "nodes", after_alias)
        if array is None:
            self._warn(" [missing 'nodes' array]")
            return

        for entry in iter_elements(text, array):
            self._trace_nodes_entry(entry)

    def _trace_nodes_entry(self, entry: str) -> None:
        # GE8PZT:BBS64 via GE8PZT qlty=20
        for name, prefix, max_len in (("call", MARGIN, 9), ("alias", ":", 6),
                                      ("via", " via ", 9), ("qual", " qlty=", 3)):
            value = get_value(entry, name, max_len)
            if value is not None:
                self._out(f"{prefix}{value}")

    def _trace_inp3(self, text: str) -> None:
        if not self._on(TraceFlags.INP3):
            self._out(" INP3")
            return

        self.writer.margin("INP3 Routing Unicast:")

        array = find_array(text, "nodes")
        if array is None:
            self._warn(" [missing 'nodes' array]")
            return

        for entry in iter_elements(text, array):
            self._trace_inp3_entry(entry)

    def _trace_inp3_entry(self, entry: str) -> None:
        """
        Show one INP3 route, e.g.

            GB7BDH     hp=2   tt=3      Alias=SWINDN 5128.75N 00158.46W S/W=XRPi
                v504k NODE PMS XRCHAT 25/10 06:20
        """
        writer = self.writer

        call = get_value(entry, "call", 9) or ""
        writer.margin(f"{call:<9}")

        hops = get_value(entry, "hops", 2) or ""
        self._out(f"  hp={hops:<2}")

        trip = get_value(entry, "tt", 5) or ""
        self._out(f"  tt={trip:<5}")

        alias = get_value(entry, "alias", 6)
        if alias is not None:
            self._out(f"  Alias={alias:<6}")

        for name in ("latitude", "longitude"):
            value = get_value(entry, name, 20)
            if value is not None:
                self._out(f" {value}")

        software = get_value(entry, "software", 20)
        if software is not None:
            self._out(f" S/W={software}")

        # The line may overflow the display from here on
        version = get_value(entry, "version", 10)
        if version is not None:
            writer.write_wrapped(f" v{version}")

        for name, label in INP3_CAPABILITIES:
            if get_value(entry, name, 5) == "true":
                writer.write_wrapped(f" {label}")

        stamp = self._format_inp3_time(get_value(entry, "timestamp", 40))
        if stamp:
            writer.write_wrapped(f" {stamp}")

        tz_mins = get_value(entry, "tzMins", 8)
        if tz_mins is not None:
            writer.write_wrapped(f" tz={tz_mins}")

    @staticmethod
    def _format_inp3_time(stamp: Optional[str]) -> Optional[str]:
        """ISO-8601 stamps are shown as sent, Unix times as local DD/MM HH:MM."""
        if stamp is None:
            return None
        if "T" in stamp:
            return stamp

        seconds = atoi(stamp)
        if seconds <= MIN_UNIX_TIME:
            return None
        try:
            return datetime.fromtimestamp(seconds).strftime("%d/%m %H:%M")
        except (OverflowError, OSError, ValueError):
            logger.debug(f"Unusable INP3 timestamp {stamp!r}")
            return None

    def _trace_netrom_l4(self, text: str) -> None:
        """
        Trace NetRom layer 4 headers. Payloads of ordinary transport
        frames are shown, record-route frames show the route, and the
        IP/NCMP/NDP/GNET extensions are only named.
        """
        if not self._on(TraceFlags.L4):
            return

        raw = get_value(text, "l4type", 15)
        if raw is None:
            self._warn(" [missing l4type]\n")
            return

        l4type = L4Type.parse(raw)
        if l4type is L4Type.UNKNOWN:
            self._warn(" [unknown l4type]\n")
            return

        if l4type is L4Type.PROT_EXT:
            self._out(f" <{raw}>")
            self._optional(text, "l4Family", " pf=", 80)
            self._optional(text, "l4Proto", " prot=", 80)
            return

        if l4type in NAMED_ONLY_L4:
            self._out(f" <{raw}>")
            return

        if l4type in (L4Type.NRR_REQUEST, L4Type.NRR_REPLY):
            self._out(f" <{raw}>")
            self._optional(text, "nrrId", " id=", 80)
            self._optional(text, "nrrRoute", f"{MARGIN}Route: ", 2047)
            return

        self._optional(text, "toCct", " cct=", 8)

        if l4type in (L4Type.CONN_REQ, L4Type.CONN_REQX):
            self._out(f" <{raw}>")
            self._optional(text, "window", " w=", 8)
            if not self._optional(text, "srcUser", "\n          ", 9):
                return
            self._optional(text, "srcNode", " at ", 9)
            self._optional(text, "service", " svc=", 8)
            self._optional(text, "l4t1", " t/o=", 8)
            self._optional(text, "bpqSpy", " bpqSpy=", 8)
            return

        if l4type is L4Type.CONN_ACK:
            self._out(f" <{raw}>")
            self._optional(text, "window", " w=", 8)
            self._optional(text, "fromCct", " myCct=", 8)
            return

        if l4type in (L4Type.CONN_NAK, L4Type.DREQ, L4Type.DACK):
            self._out(f" <{raw}>")
            return

        if l4type is L4Type.RSET:
            self._out(f" <{raw}>")
            self._optional(text, "fromCct", " myCct=", 8)
            return

        if l4type is L4Type.INFO:
            self._out(f" <{raw}")
            self._optional(text, "txSeq", " S", 8)
            self._optional(text, "rxSeq", " R", 8)
            self._out(">")
            self._optional(text, "paylen", " ilen=", 8)
            self._optional(text, "payload", f":{MARGIN}", 2047)
        elif l4type is L4Type.INFO_ACK:
            self._out(f" <{raw}")
            self._optional(text, "rxSeq", " R", 8)
            self._out(">")

        # Only INFO, INFO ACK and unrecognised types get this far
        for name, tag in (("chokeFlag", " <CHOKE>"), ("nakFlag", " <NAK>"),
                          ("moreFlag", " <MORE>")):
            if get_value(text, name, 8) is not None:
                self._out(tag)

    def _optional(self, text: str, name: str, prefix: str, max_len: int) -> bool:
        """Write prefix and value if the field is present."""
        value = get_value(text, name, max_len)
        if value is None:
            return False
        self._out(f"{prefix}{value}")
        return True

    def get_stats(self) -> Dict[str, Any]:
        """Get counts of frames seen, shown and dropped."""
        return self.stats
