#!/usr/bin/env python3

import argparse
import sys
import logging
from typing import List, Optional, TextIO

from colorama import just_fix_windows_console, Fore, Style

from pnmptrace import __version__
from pnmptrace.core import CaptureFileError, FrameCapture, TraceConfig, TraceDecoder, TraceFlags, TraceWriter
from pnmptrace.core.config import DEFAULT_FLAGS, DEFAULT_WIDTH

logger = logging.getLogger(__name__)

# Options that switch a default-on flag off, and default-off flags on
FLAG_OPTIONS_OFF = {
    'no_netrom': TraceFlags.NETROM,
    'no_l4': TraceFlags.L4,
    'no_color': TraceFlags.COLOR,
    'no_inp3': TraceFlags.INP3,
    'no_l3rtt': TraceFlags.L3RTT,
    'no_line_break': TraceFlags.LBRK,
    'no_nodes': TraceFlags.NODES,
    'no_stamp': TraceFlags.STAMP,
    'no_ui': TraceFlags.UI,
}
FLAG_OPTIONS_ON = {
    'color_to_file': TraceFlags.COLOR2FILE,
    'header_line': TraceFlags.HDRLIN,
    'json': TraceFlags.JSON,
    'quiet': TraceFlags.QUIET,
    'warnings': TraceFlags.WARNINGS,
}


def setup_logging(verbosity: int = 0) -> None:
    """Log to stderr, leaving stdout for the trace itself."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)]
    )


class PacketTracer:
    def __init__(self, config: TraceConfig, source: Optional[TextIO] = None, display: Optional[TextIO] = None):
        self.config = config
        self.source = source if source is not None else sys.stdin
        self.display = display if display is not None else sys.stdout

    def _print_banner(self):
        """Print the program banner."""
        print(f"\n{Fore.CYAN}\"pnmptrace\" JSON to AX25 Trace Decoder for PNMP{Style.RESET_ALL}", file=self.display)
        print(f"Version {__version__}\n", file=self.display)

    def _open_writer(self) -> TraceWriter:
        quiet = self.config.enabled(TraceFlags.QUIET)
        if self.config.capture_file:
            writer = TraceWriter.open(self.config.capture_file, display=self.display,
                                      quiet=quiet, width=self.config.width)
            print(f"{Fore.GREEN}Capturing traces to file '{self.config.capture_file}'{Style.RESET_ALL}",
                  file=self.display)
            return writer
        return TraceWriter(display=self.display, quiet=quiet, width=self.config.width)

    def _print_summary(self, decoder: TraceDecoder):
        """Log what happened to the frames seen this run."""
        stats = decoder.get_stats()
        dropped = stats['dropped']
        logger.info(
            f"{stats['total_frames']} reports, {stats['displayed']} traced, "
            f"{dropped['kind']} other kinds, {dropped['mandatory']} incomplete, "
            f"{dropped['filtered']} filtered"
        )
        for protocol, count in stats['protocols'].items():
            logger.info(f"{protocol}: {count} frames")

    def start_capture(self) -> int:
        """Decode the input until it ends, returning the exit status."""
        self._print_banner()

        try:
            writer = self._open_writer()
        except CaptureFileError as e:
            print(f"{Fore.RED}{e}{Style.RESET_ALL}", file=self.display)
            return 1

        decoder = TraceDecoder(self.config, writer)

        with writer:
            for note in self.config.describe():
                writer.write(f"{note}\n")

            try:
                FrameCapture(self.source).start_capture(decoder.process)
            except KeyboardInterrupt:
                writer.write_display(f"{Style.RESET_ALL}\n")
                logger.info("Trace stopped by user")

        self._print_summary(decoder)
        return 0


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog='pnmptrace',
        description='Display PNMP JSON reports in packet trace format'
    )
    parser.add_argument('input', nargs='?', help='File of JSON reports (default: stdin)')
    parser.add_argument('-3', dest='no_netrom', action='store_true', help="Don't trace NetRom layer 3 or above")
    parser.add_argument('-4', dest='no_l4', action='store_true', help="Don't trace NetRom layer 4 or above")
    parser.add_argument('-a', dest='either', metavar='CALLSIGN', default='', help='Show ALL frames to or from CALLSIGN')
    parser.add_argument('-c', dest='no_color', action='store_true', help="Don't colourise the traces")
    parser.add_argument('-C', dest='color_to_file', action='store_true', help='Include colour information in capture file')
    parser.add_argument('-f', dest='source', metavar='CALLSIGN', default='', help='Show only frames addressed FROM CALLSIGN')
    parser.add_argument('-H', dest='header_line', action='store_true', help='Show header on separate line to trace')
    parser.add_argument('-i', dest='no_inp3', action='store_true', help="Don't trace contents of INP3 routing unicasts")
    parser.add_argument('-j', dest='json', action='store_true', help='Show the raw JSON before each trace')
    parser.add_argument('-k', dest='no_l3rtt', action='store_true', help="Don't show L3RTT info field")
    parser.add_argument('-l', dest='no_line_break', action='store_true', help='Suppress blank line between traces')
    parser.add_argument('-n', dest='no_nodes', action='store_true', help="Don't trace contents of NetRom nodes broadcasts")
    parser.add_argument('-o', dest='capture_file', metavar='FILE', default='', help='Output trace to FILE')
    parser.add_argument('-p', dest='port', metavar='PORTNUM', type=int, default=0, help='Show reports only from PORTNUM')
    parser.add_argument('-P', dest='protocol', metavar='PROTOCOL', default='', help='Show only frames with this L3 protocol')
    parser.add_argument('-q', dest='quiet', action='store_true', help='No display when capturing to file (quiet)')
    parser.add_argument('-r', dest='reporter', metavar='CALLSIGN', default='', help='Show reports only from CALLSIGN')
    parser.add_argument('-s', dest='no_stamp', action='store_true', help='Suppress time stamp')
    parser.add_argument('-t', dest='destination', metavar='CALLSIGN', default='', help='Show only frames addressed TO CALLSIGN')
    parser.add_argument('-T', dest='frame_type', metavar='FRAMETYPE', default='', help='Show only this AX25 frametype, e.g. "-T UI"')
    parser.add_argument('-u', dest='no_ui', action='store_true', help="Don't display UI frames")
    parser.add_argument('-w', dest='width', metavar='WIDTH', type=int, default=DEFAULT_WIDTH, help='Display width (default 80 cols)')
    parser.add_argument('-W', dest='warnings', action='store_true', help='Enable warnings of missing/bad JSON fields')
    parser.add_argument('-v', '--verbose', action='count', default=0, help='Log progress to stderr (repeat for debug)')
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> TraceConfig:
    """Turn parsed arguments into the run's configuration."""
    flags = DEFAULT_FLAGS
    for option, flag in FLAG_OPTIONS_OFF.items():
        if getattr(args, option):
            flags &= ~flag
    for option, flag in FLAG_OPTIONS_ON.items():
        if getattr(args, option):
            flags |= flag

    return TraceConfig(
        reporter=args.reporter,
        source=args.source,
        destination=args.destination,
        either=args.either,
        protocol=args.protocol,
        frame_type=args.frame_type,
        port=args.port,
        flags=flags,
        width=args.width,
        capture_file=args.capture_file,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main function."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)
    just_fix_windows_console()

    config = build_config(args)

    if not args.input:
        # Undecodable bytes from a producer must not end the stream
        if hasattr(sys.stdin, 'reconfigure'):
            sys.stdin.reconfigure(errors='replace')
        return PacketTracer(config).start_capture()

    try:
        source = open(args.input, 'r', encoding='utf-8', errors='replace')
    except OSError as e:
        logger.error(f"Can't open input file '{args.input}': {e}")
        return 1

    with source:
        return PacketTracer(config, source=source).start_capture()


if __name__ == '__main__':
    sys.exit(main())
