"""PortWatch: snapshots of TCP listening sockets and the diff between consecutive runs."""
__version__ = "1.0.0"
