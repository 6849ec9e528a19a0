"""
Loopback OAuth callback server.

Runs a short-lived local HTTP listener that receives the browser redirect
from the Microsoft identity platform and hands the authorization code back
to the waiting coroutine.

The pending result settles exactly once. Whichever of the callback, the
timeout timer or a listener failure comes first wins; the timers and the
listener are then torn down once, in a single place.
"""

import asyncio
import html
import logging
from typing import Optional

from aiohttp import web

from ..core.exceptions import (
    AuthTimeoutError,
    LoopbackServerError,
    MissingAuthorizationCodeError,
    OAuthCallbackError,
)


logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_GRACE_SECONDS = 2.0

# Browser probes that must not be mistaken for the callback
NOISE_MARKERS = ("favicon", "service-worker")


PAGE_STYLE = "font-family: Arial; padding: 20px;"

SUCCESS_PAGE = """<html>
  <body style="{style} text-align: center;">
    <h1>&#9989; Authentication Successful!</h1>
    <p>You can close this window and return to the terminal.</p>
    <p><small>Code received: {code_prefix}...</small></p>
    <script>setTimeout(() => window.close(), 3000);</script>
  </body>
</html>"""

ERROR_PAGE = """<html>
  <body style="{style}">
    <h1>&#10060; Authentication Error</h1>
    <p><strong>Error:</strong> {error}</p>
    <p><strong>Description:</strong> {description}</p>
    <p>Return to the terminal and restart the process.</p>
    <script>setTimeout(() => window.close(), 5000);</script>
  </body>
</html>"""

MISSING_CODE_PAGE = """<html>
  <body style="{style}">
    <h1>&#10060; Missing Authorization Code</h1>
    <p>The request does not contain an authorization code.</p>
    <p>URL received: <code>{url}</code></p>
    <p>Check your Azure app configuration.</p>
    <script>setTimeout(() => window.close(), 5000);</script>
  </body>
</html>"""

HELP_PAGE = """<html>
  <body style="{style}">
    <h1>&#128272; Microsoft Graph Authentication Server</h1>
    <p>This server is waiting for a Microsoft authentication callback.</p>
    <p>If you see this page, authentication has not yet occurred.</p>
    <p><strong>Instructions:</strong></p>
    <ol>
      <li>Close this window</li>
      <li>Return to the terminal</li>
      <li>Click on the Microsoft authentication link</li>
    </ol>
  </body>
</html>"""


def _html_response(body: str, status: int = 200) -> web.Response:
    return web.Response(text=body, status=status, content_type="text/html", charset="utf-8")


class LoopbackAuthServer:
    """
    One-shot local HTTP server awaiting a single OAuth redirect.

    Usage:
        server = LoopbackAuthServer(port=8080, timeout=120)
        code = await server.wait_for_code()

    An instance can only be started once.
    """

    def __init__(
        self,
        port: int,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        host: str = "localhost",
        grace_period: float = DEFAULT_GRACE_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the callback server.

        Args:
            port: Local port the redirect URI points at
            timeout: Seconds to wait for the callback before giving up
            host: Interface to bind
            grace_period: Seconds the missing-code page stays reachable before
                the server shuts down
            logger: Logger to use (default: module logger)
        """
        self.port = port
        self.host = host
        self.timeout = timeout
        self.grace_period = grace_period
        self.logger = logger or logging.getLogger(__name__)

        self._started = False
        self._result: Optional[asyncio.Future] = None
        self._runner: Optional[web.AppRunner] = None
        self._timeout_handle: Optional[asyncio.TimerHandle] = None
        self._grace_handle: Optional[asyncio.TimerHandle] = None

    @property
    def settled(self) -> bool:
        """True once a code or an error has been delivered."""
        return self._result is not None and self._result.done()

    async def wait_for_code(self) -> str:
        """
        Start listening and wait for the authorization code.

        Returns:
            Authorization code from the ?code= query parameter

        Raises:
            OAuthCallbackError: Provider redirected back with ?error=
            MissingAuthorizationCodeError: Callback had neither code nor error
            AuthTimeoutError: No callback within the timeout
            LoopbackServerError: Listener could not be started
        """
        if self._started:
            raise RuntimeError("LoopbackAuthServer can only be started once")
        self._started = True

        loop = asyncio.get_running_loop()
        self._result = loop.create_future()

        try:
            await self._start_listener()
            if not self.settled:
                self._timeout_handle = loop.call_later(self.timeout, self._on_timeout)
            return await self._result
        finally:
            await self._shutdown()

    async def _start_listener(self) -> None:
        app = web.Application(middlewares=[self._ignore_noise])
        app.router.add_get("/callback", self._handle_callback)
        app.router.add_get("/", self._handle_help)
        app.router.add_get("/auth", self._handle_help)

        self._runner = web.AppRunner(app, access_log=None)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.host, self.port)
        try:
            await site.start()
        except OSError as e:
            self.logger.error(f"Server error: {e}")
            error = LoopbackServerError(f"Could not listen on {self.host}:{self.port}: {e}")
            error.__cause__ = e
            self._settle(error=error)
            return

        self.logger.debug(f"Authentication server started on port {self.port}")

    async def _shutdown(self) -> None:
        """Cancel timers and close the listener (runs once per instance)."""
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
        if self._grace_handle is not None:
            self._grace_handle.cancel()
            self._grace_handle = None

        runner, self._runner = self._runner, None
        if runner is not None:
            await runner.cleanup()
            self.logger.debug("Authentication server stopped")

    def _settle(self, code: Optional[str] = None, error: Optional[BaseException] = None) -> bool:
        """Deliver the outcome; later calls are ignored."""
        if self._result is None or self._result.done():
            return False

        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

        if error is not None:
            self._result.set_exception(error)
        else:
            self._result.set_result(code)
        return True

    def _on_timeout(self) -> None:
        self._timeout_handle = None
        self.logger.warning(f"{self.timeout:g}s authentication timeout reached")
        self._settle(error=AuthTimeoutError(f"Authentication timeout after {self.timeout:g}s"))

    @web.middleware
    async def _ignore_noise(self, request: web.Request, handler):
        self.logger.debug(f"Request received: {request.method} {request.path_qs}")
        if any(marker in request.path_qs for marker in NOISE_MARKERS):
            return web.Response(status=404)
        return await handler(request)

    async def _handle_callback(self, request: web.Request) -> web.Response:
        code = request.query.get("code")
        error = request.query.get("error")
        description = request.query.get("error_description")

        self.logger.debug(
            f"Parameters received: code={'PRESENT' if code else 'MISSING'}, "
            f"error={error}, description={description}"
        )

        if error:
            self.logger.error(f"OAuth Error: {error} - {description}")
            page = ERROR_PAGE.format(
                style=PAGE_STYLE,
                error=html.escape(error),
                description=html.escape(description or "No description"),
            )
            response = await self._send(request, _html_response(page, status=400))
            self._settle(error=OAuthCallbackError(error, description))
            return response

        if code:
            self.logger.debug(f"Authorization code received: {code[:10]}...")
            page = SUCCESS_PAGE.format(style=PAGE_STYLE, code_prefix=html.escape(code[:15]))
            response = await self._send(request, _html_response(page))
            self._settle(code=code)
            return response

        self.logger.error("No authorization code in request")
        self.logger.debug(f"Complete URL: {request.path_qs}")
        if not self.settled and self._grace_handle is None:
            # Keep serving long enough for the diagnostic page to be read
            self._grace_handle = asyncio.get_running_loop().call_later(
                self.grace_period,
                self._settle,
                None,
                MissingAuthorizationCodeError("Missing authorization code"),
            )
        return _html_response(
            MISSING_CODE_PAGE.format(style=PAGE_STYLE, url=html.escape(request.path_qs)),
            status=400,
        )

    @staticmethod
    async def _send(request: web.Request, response: web.Response) -> web.Response:
        # Settling triggers shutdown, so the page is written first
        await response.prepare(request)
        await response.write_eof()
        return response

    async def _handle_help(self, request: web.Request) -> web.Response:
        return _html_response(HELP_PAGE.format(style=PAGE_STYLE))


async def await_authorization_code(
    port: int,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    host: str = "localhost",
    grace_period: float = DEFAULT_GRACE_SECONDS,
    logger: Optional[logging.Logger] = None,
) -> str:
    """
    Listen on a local port until the OAuth redirect delivers a code.

    Args:
        port: Local port the redirect URI points at
        timeout: Seconds to wait before raising AuthTimeoutError
        host: Interface to bind
        grace_period: Delay before a missing-code callback fails the wait
        logger: Logger to use

    Returns:
        Authorization code
    """
    server = LoopbackAuthServer(port, timeout=timeout, host=host, grace_period=grace_period, logger=logger)
    return await server.wait_for_code()
