"""
The AdmissionServer serves the admission hooks over HTTP(S) from its own
thread and event loop
"""

# Standard
from typing import Callable, Optional
import asyncio
import json
import ssl
import threading

# Third Party
import aiohttp.web

# First Party
import alog

# Local
from .. import config, constants
from ..watch_manager.threads import ThreadBase
from .admission import ApplicationAdmission, WebhookError

log = alog.use_channel("WHSRV")

# Time between checks for shutdown while serving
SHUTDOWN_POLL_TIME = 0.1


class AdmissionServer(ThreadBase):
    """Runs an aiohttp application answering AdmissionReview requests on the
    mutating and validating Application paths
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        admission: Optional[ApplicationAdmission] = None,
        addr: Optional[str] = None,
        port: Optional[int] = None,
        cert_file: Optional[str] = None,
        key_file: Optional[str] = None,
    ):
        """
        Args:
            admission:  Optional[ApplicationAdmission]
                The hooks to serve
            addr:  Optional[str]
                The address to listen on. Any interface when empty
            port:  Optional[int]
                The port to listen on. Defaults to config.admission.port
            cert_file:  Optional[str]
                Certificate served when given together with key_file
            key_file:  Optional[str]
                Private key of the certificate
        """
        super().__init__(name="admission_server", daemon=True)
        self.admission = admission or ApplicationAdmission()
        self.addr = addr if addr is not None else config.admission.addr
        self.port = port if port is not None else config.admission.port
        self.cert_file = cert_file or config.admission.cert_file
        self.key_file = key_file or config.admission.key_file
        self.ready = threading.Event()

    ## Application #############################################################

    def build_app(self) -> aiohttp.web.Application:
        """Build the aiohttp application with the two admission routes"""

        # Redefine as coroutines instead of partials to avoid warnings from aiohttp.
        async def _mutate(request: aiohttp.web.Request) -> aiohttp.web.Response:
            return await self._serve(self.admission.review_mutating, request)

        async def _validate(request: aiohttp.web.Request) -> aiohttp.web.Response:
            return await self._serve(self.admission.review_validating, request)

        app = aiohttp.web.Application()
        app.add_routes(
            [
                aiohttp.web.post(constants.MUTATE_APPLICATION_PATH, _mutate),
                aiohttp.web.post(constants.VALIDATE_APPLICATION_PATH, _validate),
            ]
        )
        return app

    @staticmethod
    async def _serve(
        fn: Callable[[dict], dict],
        request: aiohttp.web.Request,
    ) -> aiohttp.web.Response:
        """Serve a single admission request. Bad reviews are answered with
        HTTP 400 while rejections are reported inside the review response.
        """
        try:
            text = await request.text()
            data = json.loads(text)
            response = fn(data)
            return aiohttp.web.json_response(response)
        except WebhookError as err:
            raise aiohttp.web.HTTPBadRequest(reason=str(err))
        except json.JSONDecodeError as err:
            raise aiohttp.web.HTTPBadRequest(reason=str(err))

    ## Thread ##################################################################

    def run(self):
        """Serve until the thread is stopped"""
        asyncio.run(self._serve_forever())

    async def _serve_forever(self):
        runner = aiohttp.web.AppRunner(self.build_app(), handle_signals=False)
        await runner.setup()
        try:
            context = self._build_ssl()
            addr = self.addr or None  # None is aiohttp's "any interface"
            site = aiohttp.web.TCPSite(runner, addr, self.port, ssl_context=context)
            await site.start()

            schema = "http" if context is None else "https"
            log.info(
                "Listening for admission reviews at %s://%s:%d",
                schema,
                addr or "*",
                self.port,
            )
            self.ready.set()
            await self._wait_for_shutdown()
        finally:
            # On any reason of exit, stop serving the endpoint.
            await runner.cleanup()

    async def _wait_for_shutdown(self):
        while not self.should_stop():
            await asyncio.sleep(SHUTDOWN_POLL_TIME)

    def _build_ssl(self) -> Optional[ssl.SSLContext]:
        """Build the server SSL context when a certificate is configured"""
        if not self.cert_file:
            log.debug("No certificate configured. Serving plain http")
            return None
        context = ssl.create_default_context(purpose=ssl.Purpose.CLIENT_AUTH)
        context.load_cert_chain(self.cert_file, self.key_file)
        return context
