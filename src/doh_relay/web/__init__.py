"""
DoH Relay Web Module

aiohttp front end for the relay.
"""

from .server import WebServer

__all__ = ["WebServer"]
