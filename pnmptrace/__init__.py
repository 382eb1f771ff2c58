"""JSON to AX.25 packet trace decoder for the Packet Network Monitoring Project."""

__version__ = "1.0.0"
