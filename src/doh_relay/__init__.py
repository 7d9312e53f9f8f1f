"""
DoH Relay

DNS-over-HTTPS forwarding layer: a DNS wire-format codec, a multi-upstream
DoH resolver pool and an aiohttp front end.
"""

__version__ = "0.1.0"
