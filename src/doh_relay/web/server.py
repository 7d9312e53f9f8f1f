"""
DoH Relay Web Server

This module provides the HTTP server using aiohttp for:
- The relay endpoints (see api.py)
- CORS preflight and response headers
- Token authentication
- Request logging and error handling middleware
"""

import asyncio
import hmac
from typing import Optional

from aiohttp import web
from aiohttp.web import Application

from ..config.schema import DohRelayConfig
from ..core.resolver import ResolutionService
from ..dns_logging import get_logger
from .api import setup_api_routes


class WebServer:
    """DoH relay HTTP front end"""

    def __init__(self, config: DohRelayConfig, service: ResolutionService):
        """Initialize web server.

        Args:
            config: Relay configuration
            service: Resolution service handling the queries
        """
        self.config = config
        self.service = service
        self.logger = get_logger("web_server")

        self.app: Optional[Application] = None
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None

    def setup_application(self) -> Application:
        """Setup aiohttp application with routes and middleware."""
        app = web.Application(
            middlewares=[
                self._create_cors_middleware(),
                self._create_logging_middleware(),
                self._create_auth_middleware(),
                self._create_error_middleware(),
            ]
        )

        setup_api_routes(app, self.config, self.service)
        app.router.add_route("OPTIONS", "/{path:.*}", self._options_handler)

        return app

    def _cors_headers(self, headers) -> None:
        headers["Access-Control-Allow-Origin"] = self.config.web.cors_origin

    async def _options_handler(self, request: web.Request) -> web.Response:
        """Answer CORS preflight requests."""
        response = web.Response()
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "*"
        response.headers["Access-Control-Max-Age"] = "86400"
        return response

    def _create_cors_middleware(self):
        """Create CORS middleware."""
        enabled = self.config.web.cors_enabled

        @web.middleware
        async def cors_middleware(request, handler):
            try:
                response = await handler(request)
            except web.HTTPException as ex:
                if enabled:
                    self._cors_headers(ex.headers)
                raise

            if enabled:
                self._cors_headers(response.headers)
            return response

        return cors_middleware

    def _create_auth_middleware(self):
        """Create token authentication middleware."""
        token = self.config.security.auth_token

        @web.middleware
        async def auth_middleware(request, handler):
            if token and request.method != "OPTIONS":
                supplied = request.query.get("token", "")
                if not hmac.compare_digest(supplied.encode(), token.encode()):
                    return web.Response(text="Authentication failed", status=403)
            return await handler(request)

        return auth_middleware

    def _create_logging_middleware(self):
        """Create logging middleware."""
        logger = self.logger

        @web.middleware
        async def logging_middleware(request, handler):
            """Log HTTP requests."""
            start_time = asyncio.get_running_loop().time()

            try:
                response = await handler(request)
            except web.HTTPException as ex:
                logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.path,
                    remote=request.remote,
                    status=ex.status,
                    response_time_ms=round(
                        (asyncio.get_running_loop().time() - start_time) * 1000, 2
                    ),
                )
                raise

            logger.info(
                "HTTP request",
                method=request.method,
                path=request.path,
                remote=request.remote,
                status=response.status,
                response_time_ms=round(
                    (asyncio.get_running_loop().time() - start_time) * 1000, 2
                ),
            )
            return response

        return logging_middleware

    def _create_error_middleware(self):
        """Create error handling middleware."""
        logger = self.logger
        debug = self.config.web.debug

        @web.middleware
        async def error_middleware(request, handler):
            """Handle unexpected errors gracefully."""
            try:
                return await handler(request)
            except web.HTTPException:
                raise
            except Exception as ex:
                logger.error(
                    "Unhandled error in web server",
                    method=request.method,
                    path=request.path,
                    error=str(ex),
                )

                return web.json_response(
                    {
                        "error": "Internal server error",
                        "message": str(ex) if debug else "An unexpected error occurred",
                    },
                    status=500,
                )

        return error_middleware

    async def start(self) -> None:
        """Start the web server."""
        if self.runner:
            self.logger.warning("Web server is already running")
            return

        try:
            self.app = self.setup_application()

            self.runner = web.AppRunner(self.app)
            await self.runner.setup()

            self.site = web.TCPSite(
                self.runner,
                host=self.config.server.bind_address,
                port=self.config.server.port,
            )
            await self.site.start()

            self.logger.info(
                "Web server started",
                host=self.config.server.bind_address,
                port=self.config.server.port,
            )

        except Exception as ex:
            self.logger.error("Failed to start web server", error=str(ex))
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the web server."""
        self.logger.info("Stopping web server")

        if self.site:
            await self.site.stop()
            self.site = None

        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        self.app = None

        self.logger.info("Web server stopped")
