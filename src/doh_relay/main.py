"""
DoH Relay Main Entry Point

This script provides the main entry point for running the relay, or for
performing a single lookup from the command line.
"""

import argparse
import asyncio
import json
import platform
import signal
import sys
from typing import Optional

from .config.loader import ConfigLoader
from .config.schema import DohRelayConfig
from .core.errors import AllUpstreamsFailed, DNSCodecError
from .core.resolver import ResolutionService
from .dns_logging import get_logger, log_exception, setup_logging
from .web import WebServer


class DohRelayApp:
    """DoH Relay Application"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path
        self.config: Optional[DohRelayConfig] = None
        self.service: Optional[ResolutionService] = None
        self.web_server: Optional[WebServer] = None
        self._shutdown_event = asyncio.Event()
        self.logger = None

    def initialize(self) -> None:
        """Load configuration and build the components"""
        self.config = ConfigLoader(self.config_path).load_config()

        setup_logging(self.config.logging)
        self.logger = get_logger("doh_relay_app")

        self.service = ResolutionService(self.config.upstream)
        self.web_server = WebServer(self.config, self.service)

        self.logger.info(
            "DoH relay initialized",
            upstream_servers=list(self.config.upstream.servers),
            strategy=self.config.upstream.strategy,
            timeout_ms=self.config.upstream.timeout_ms,
            auth_enabled=bool(self.config.security.auth_token),
        )

    async def start(self) -> None:
        """Start the relay and run until a shutdown signal arrives"""
        if not self.service:
            self.initialize()

        try:
            await self.service.start()
            await self.web_server.start()

            loop = asyncio.get_running_loop()
            for sig in [signal.SIGTERM, signal.SIGINT]:
                loop.add_signal_handler(sig, self._signal_handler)

            await self._shutdown_event.wait()

        except Exception as e:
            log_exception(self.logger, "Error starting DoH relay", e)
            raise
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the relay"""
        self.logger.info("Shutting down DoH relay")

        if self.web_server:
            await self.web_server.stop()

        if self.service:
            await self.service.close()

        self.logger.info("DoH relay shutdown complete")

    def _signal_handler(self) -> None:
        """Handle shutdown signals"""
        self.logger.info("Received shutdown signal")
        self._shutdown_event.set()


async def lookup(app: DohRelayApp, name: str, record_type: Optional[str], server: Optional[str]) -> int:
    """Perform one lookup, print the JSON outcome and return an exit code"""
    app.initialize()
    service = app.service
    try:
        await service.start()
        if record_type:
            outcome = await service.resolve(name, record_type, server)
            payload = outcome.to_dict()
            failed = outcome.status.value == "error"
        else:
            results = await service.resolve_all(name, server)
            payload = {
                "domain": name,
                "type": "all",
                "a_records": results["A"].to_dict() if results["A"] else {"status": "failed"},
                "aaaa_records": results["AAAA"].to_dict() if results["AAAA"] else {"status": "failed"},
            }
            failed = results["A"] is None and results["AAAA"] is None
    except (DNSCodecError, ValueError, AllUpstreamsFailed) as e:
        print(f"Lookup failed: {e}", file=sys.stderr)
        return 1
    finally:
        await service.close()

    print(json.dumps(payload, indent=2))
    return 1 if failed else 0


async def main(argv=None) -> int:
    """Main function"""
    parser = argparse.ArgumentParser(description="DNS over HTTPS relay")
    parser.add_argument("--config", "-c", default=None, help="Configuration file path")
    parser.add_argument("--resolve", metavar="NAME", help="Resolve NAME once and exit")
    parser.add_argument("--type", "-t", default=None, help="Record type for --resolve")
    parser.add_argument("--server", "-s", default=None, help="Explicit upstream URL for --resolve")

    args = parser.parse_args(argv)

    app = DohRelayApp(args.config)

    if args.resolve:
        return await lookup(app, args.resolve, args.type, args.server)

    await app.start()
    return 0


def run() -> None:
    """Console script entry point"""
    try:
        if platform.system() != "Windows":
            import uvloop

            exit_code = uvloop.run(main())
        else:
            exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        print("\nDoH relay interrupted")
        exit_code = 0
    except Exception as e:
        print(f"Fatal error: {e}")
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
