"""
capkeeper - a long-running supervisor for packet-capture tools.

Keeps a capture process (tcpdump by default) running, starts a new capture
session every day, prunes old capture files and keeps its own log file small.
"""

__version__ = "1.0.0"
