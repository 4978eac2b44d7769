"""Shared pytest fixtures for the APT S3 method tests.

The method engine is driven through an ``asyncio.StreamReader`` fed with
protocol text and a ``StringIO`` capturing its output. S3 is replaced by
``FakeObjectStore``, an in-memory store that records how it was built and
called.
"""

import asyncio
import io
from datetime import datetime, timezone
from pathlib import Path

import pytest

from apt_s3.errors import NotFoundError
from apt_s3.message import Message, parse
from apt_s3.method import Method, MethodState
from apt_s3.storage.backend import ObjectInfo

LAST_MODIFIED = datetime(2018, 10, 25, 20, 17, 39, tzinfo=timezone.utc)


class FakeObjectStore:
    """In-memory ObjectStore used in place of S3."""

    def __init__(self, factory, region, access_key=None, secret_key=None, role_arn=None):
        self.factory = factory
        self.region = region
        self.access_key = access_key
        self.secret_key = secret_key
        self.role_arn = role_arn
        self.calls: list[tuple] = []

    async def init(self) -> None:
        self.calls.append(("init",))

    async def close(self) -> None:
        self.calls.append(("close",))

    async def probe_object(self, bucket: str, key: str) -> ObjectInfo:
        self.calls.append(("probe", bucket, key))
        if (bucket, key) not in self.factory.objects:
            raise NotFoundError(bucket, key)
        data = self.factory.objects[(bucket, key)]
        return ObjectInfo(size=len(data), last_modified=LAST_MODIFIED)

    async def stream_object(self, bucket: str, key: str, path) -> int:
        self.calls.append(("stream", bucket, key, str(path)))
        if self.factory.stream_error is not None:
            raise self.factory.stream_error
        data = self.factory.objects[(bucket, key)]
        Path(path).write_bytes(data)
        return len(data)


class FakeStoreFactory:
    """Callable store factory remembering every store it created."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.created: list[FakeObjectStore] = []
        self.stream_error: Exception | None = None

    def __call__(self, **kwargs) -> FakeObjectStore:
        store = FakeObjectStore(self, **kwargs)
        self.created.append(store)
        return store


class Harness:
    """A Method wired to an in-memory reader and output buffer."""

    def __init__(self, factory: FakeStoreFactory) -> None:
        self.factory = factory
        self.reader = asyncio.StreamReader()
        self.output = io.StringIO()
        self.resolved_regions: list[str] = []
        self.method = Method(
            self.reader,
            self.output,
            state=MethodState(),
            store_factory=factory,
            endpoint_resolver=self._resolve,
        )

    def _resolve(self, region: str) -> str:
        self.resolved_regions.append(region)
        if region == "us-east-1":
            return "s3.amazonaws.com"
        return f"s3.{region}.amazonaws.com"

    def feed(self, text: str) -> None:
        self.reader.feed_data(text.encode("utf-8"))

    async def run(self, text: str = "") -> int:
        """Feed ``text``, close the input and run to completion."""
        if text:
            self.feed(text)
        self.reader.feed_eof()
        return await asyncio.wait_for(self.method.run(), timeout=5)

    def messages(self) -> list[Message]:
        """Parse everything the method wrote so far."""
        chunks = self.output.getvalue().split("\n\n")
        return [parse(chunk) for chunk in chunks if chunk.strip()]

    def statuses(self) -> list[int]:
        return [m.header.status for m in self.messages()]


@pytest.fixture
def store_factory() -> FakeStoreFactory:
    return FakeStoreFactory()


@pytest.fixture
async def harness(store_factory: FakeStoreFactory) -> Harness:
    # Built inside the running loop so the StreamReader binds to it.
    return Harness(store_factory)
