"""APT method engine for S3.

Implements the APT acquire-method interface over stdin/stdout:

    - Announces capabilities (``100 Capabilities``) on start.
    - Frames blank-line-terminated messages from the input stream.
    - Handles every framed message in its own task, so a slow download
      never holds up the next request (APT pipelines requests).
    - ``601 Configuration`` sets the region / role to use.
    - ``600 URI Acquire`` waits for configuration, then HEADs the object,
      streams it to ``Filename`` and reports ``201 URI Done`` with hashes.

Any fatal error ends the run: a ``401 General Failure`` message is written
and ``run()`` returns a non-zero status. APT treats the exit as a failure of
every outstanding request.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TextIO

from apt_s3.errors import (
    FatalError,
    MissingFieldError,
    NotFoundError,
    TransferError,
)
from apt_s3.location import ObjectLocation, resolve_location
from apt_s3.message import Message, StatusCode, parse, serialize
from apt_s3.responses import (
    capabilities,
    general_failure,
    general_log,
    not_found,
    status,
    uri_done,
    uri_start,
)
from apt_s3.storage.backend import ObjectStore
from apt_s3.storage.endpoints import resolve_endpoint
from apt_s3.storage.s3 import S3ObjectStore

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"

CONFIG_ITEM_REGION = "Acquire::s3::region"
CONFIG_ITEM_ROLE = "Acquire::s3::role"
CONFIG_ITEM_DEBUG = "Debug::Acquire::s3"

# A blank line only ends a message once the buffer holds more than this.
_MIN_MESSAGE_BYTES = 3

StoreFactory = Callable[..., ObjectStore]


class MethodState:
    """Settings APT delivers in its ``601 Configuration`` message.

    Attributes:
        region: AWS region used for endpoint resolution and clients.
        role_arn: Role to assume when a URI carries no credentials.
        debug: Whether to send ``101 Log`` diagnostics to APT.
        configured: Set once the first configuration has been applied.
    """

    def __init__(self, region: str = DEFAULT_REGION) -> None:
        self.region = region
        self.role_arn: str | None = None
        self.debug = False
        self.configured = asyncio.Event()


class Method:
    """Reads method messages from ``reader`` and answers on ``output``.

    Attributes:
        state: Configuration shared by all handlers.
        outstanding: Messages framed but not yet fully handled.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        output: TextIO,
        state: MethodState | None = None,
        store_factory: StoreFactory = S3ObjectStore,
        endpoint_resolver: Callable[[str], str] = resolve_endpoint,
    ) -> None:
        self.state = state or MethodState()
        self.outstanding = 0
        self._reader = reader
        self._output = output
        self._store_factory = store_factory
        self._resolve_endpoint = endpoint_resolver

    async def run(self) -> int:
        """Run until input is exhausted and every request is handled.

        Returns:
            0 on a clean exit, 1 after a fatal error.
        """
        self._emit(capabilities())

        failure: FatalError | None = None
        try:
            async with asyncio.TaskGroup() as group:
                group.create_task(self._read_input(group))
        except* FatalError as eg:
            failure = _first_error(eg)

        if failure is not None:
            logger.error("Fatal error: %s", failure.message)
            self._emit(general_failure(failure))
            return 1
        return 0

    def _emit(self, message: Message) -> None:
        # One write per message keeps concurrent handlers from interleaving.
        self._output.write(serialize(message))
        self._output.flush()
        logger.debug(
            "Sent %d %s",
            message.header.status,
            message.header.description,
            extra={"status": int(message.header.status)},
        )

    def _log(self, text: str) -> None:
        if self.state.debug:
            self._emit(general_log(text))

    # -- Framing ---------------------------------------------------------------

    async def _read_input(self, group: asyncio.TaskGroup) -> None:
        """Frame messages from the input and spawn a handler for each."""
        buffer = b""
        while True:
            try:
                line = await self._reader.readline()
            except (OSError, ValueError) as e:
                raise TransferError(f"reading input: {e}") from e
            if not line:
                break

            content = line.rstrip(b"\r\n")
            buffer += content + b"\n"
            if content:
                continue
            if not buffer.strip():
                buffer = b""
            elif len(buffer) > _MIN_MESSAGE_BYTES:
                self.outstanding += 1
                group.create_task(self._handle(buffer))
                buffer = b""

        if buffer.strip():
            logger.debug("Discarding unterminated input: %r", buffer)

    # -- Dispatch --------------------------------------------------------------

    async def _handle(self, raw: bytes) -> None:
        """Parse one framed message and route it by status code."""
        try:
            msg = parse(raw)
            code = msg.header.status
            if code == StatusCode.CONFIGURATION:
                self._configure(msg)
            elif code == StatusCode.URI_ACQUIRE:
                await self._acquire(msg)
            else:
                logger.debug("Ignoring message: %s", msg.header)
        except FatalError:
            raise
        except Exception as e:
            raise TransferError(str(e)) from e
        finally:
            self.outstanding -= 1

    def _configure(self, msg: Message) -> None:
        """Apply ``Config-Item`` values. Unknown keys are ignored."""
        for item in msg.get_field_list("Config-Item"):
            name, sep, value = item.value.partition("=")
            if not sep:
                continue
            if name == CONFIG_ITEM_REGION:
                self.state.region = value
            elif name == CONFIG_ITEM_ROLE:
                self.state.role_arn = value
            elif name == CONFIG_ITEM_DEBUG:
                self.state.debug = value.lower() in ("true", "yes", "1")

        logger.info(
            "Configured: region=%s role=%s", self.state.region, self.state.role_arn
        )
        self.state.configured.set()
        self._log(f"Set the s3 region to {self.state.region}")

    async def _acquire(self, msg: Message) -> None:
        """Download one object and report the result."""
        await self.state.configured.wait()

        uri, found = msg.get_field_value("URI")
        if not found:
            raise MissingFieldError("acquire", "URI")

        endpoint_host = self._resolve_endpoint(self.state.region)
        location = resolve_location(uri, endpoint_host)
        self._emit(status(location.uri, f"Connecting to {endpoint_host}"))
        self._log(f"Resolved {uri} to bucket {location.bucket} key {location.key}")

        store = self._open_store(location)
        try:
            await store.init()
            try:
                info = await store.probe_object(location.bucket, location.key)
            except NotFoundError:
                logger.info(
                    "Not found: %s/%s", location.bucket, location.key,
                    extra={"uri": uri, "bucket": location.bucket, "key": location.key},
                )
                self._emit(not_found(location.uri))
                return

            self._emit(uri_start(location.uri, info.size, info.last_modified))

            filename, found = msg.get_field_value("Filename")
            if not found:
                raise MissingFieldError("acquire", "Filename")

            size = await store.stream_object(location.bucket, location.key, filename)
            self._emit(uri_done(location.uri, filename, size, info.last_modified))
            logger.info(
                "Fetched %s/%s (%d bytes)", location.bucket, location.key, size,
                extra={"uri": uri, "bucket": location.bucket, "key": location.key},
            )
        finally:
            await store.close()

    def _open_store(self, location: ObjectLocation) -> ObjectStore:
        """Create a store with the credentials this request should use."""
        if location.access_key:
            if location.secret_key is None:
                raise MissingFieldError("acquire", "Password", what="value")
            return self._store_factory(
                region=self.state.region,
                access_key=location.access_key,
                secret_key=location.secret_key,
            )
        return self._store_factory(region=self.state.region, role_arn=self.state.role_arn)


def _first_error(group: BaseExceptionGroup) -> FatalError:
    exc: BaseException = group
    while isinstance(exc, BaseExceptionGroup):
        exc = exc.exceptions[0]
    return exc
