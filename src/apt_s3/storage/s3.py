"""Amazon S3 object store for the APT S3 method.

Downloads objects via aiobotocore. Credentials are chosen per request:

    1. An access key and secret embedded in the request URI.
    2. Temporary credentials from STS AssumeRole, when APT configured
       ``Acquire::s3::role``. The role is assumed with the default chain.
    3. The standard AWS credential chain (env vars, ~/.aws/credentials,
       instance profile, etc.).
"""

import logging
from pathlib import Path

from aiobotocore.session import AioSession
from botocore.exceptions import BotoCoreError, ClientError

from apt_s3.errors import NotFoundError, TransferError
from apt_s3.storage.backend import ObjectInfo

logger = logging.getLogger(__name__)

# Streaming chunk size: 64 KB
_CHUNK_SIZE = 64 * 1024

_ROLE_SESSION_NAME = "apt-s3"

_NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


def _is_not_found(e: ClientError) -> bool:
    code = e.response.get("Error", {}).get("Code", "")
    status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in _NOT_FOUND_CODES or status == 404


class S3ObjectStore:
    """Object store that reads from Amazon S3.

    Attributes:
        region: The AWS region of the client.
        access_key: Explicit access key id, or None.
        secret_key: Explicit secret access key, or None.
        role_arn: Role to assume when no explicit keys are given, or None.
        chunk_size: Read size used while streaming object bodies.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        access_key: str | None = None,
        secret_key: str | None = None,
        role_arn: str | None = None,
        chunk_size: int = _CHUNK_SIZE,
    ) -> None:
        self.region = region
        self.access_key = access_key
        self.secret_key = secret_key
        self.role_arn = role_arn
        self.chunk_size = chunk_size
        self._session = AioSession()
        self._client = None
        self._client_ctx = None

    async def init(self) -> None:
        """Resolve credentials and create the aiobotocore S3 client.

        Raises:
            TransferError: If assuming the configured role fails.
        """
        if self.access_key and self.secret_key is not None:
            self._session.set_credentials(self.access_key, self.secret_key)
            source = "static"
        elif self.role_arn:
            await self._assume_role()
            source = "assume-role"
        else:
            source = "default-chain"

        self._client_ctx = self._session.create_client("s3", region_name=self.region)
        self._client = await self._client_ctx.__aenter__()
        logger.debug("S3 client created: region=%s credentials=%s", self.region, source)

    async def _assume_role(self) -> None:
        """Swap the session credentials for temporary role credentials."""
        try:
            async with self._session.create_client(
                "sts", region_name=self.region
            ) as sts:
                resp = await sts.assume_role(
                    RoleArn=self.role_arn, RoleSessionName=_ROLE_SESSION_NAME
                )
        except (BotoCoreError, ClientError) as e:
            raise TransferError(f"assuming role {self.role_arn}: {e}") from e

        creds = resp["Credentials"]
        self._session.set_credentials(
            creds["AccessKeyId"], creds["SecretAccessKey"], creds["SessionToken"]
        )

    async def close(self) -> None:
        """Close the aiobotocore client session."""
        if self._client_ctx is not None:
            await self._client_ctx.__aexit__(None, None, None)
            self._client = None
            self._client_ctx = None

    async def probe_object(self, bucket: str, key: str) -> ObjectInfo:
        """HEAD an object.

        Raises:
            NotFoundError: If S3 answers 404.
            TransferError: On any other client or transport error.
        """
        try:
            resp = await self._client.head_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise NotFoundError(bucket, key) from e
            raise TransferError(f"HeadObject {bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise TransferError(f"HeadObject {bucket}/{key}: {e}") from e

        return ObjectInfo(size=resp["ContentLength"], last_modified=resp["LastModified"])

    async def stream_object(self, bucket: str, key: str, path: str | Path) -> int:
        """GET an object and write its body to ``path`` in chunks.

        Returns:
            The number of bytes written.

        Raises:
            TransferError: If the request or the local write fails.
        """
        written = 0
        try:
            resp = await self._client.get_object(Bucket=bucket, Key=key)
            with open(path, "wb") as fh:
                async with resp["Body"] as stream:
                    while True:
                        chunk = await stream.read(self.chunk_size)
                        if not chunk:
                            break
                        fh.write(chunk)
                        written += len(chunk)
        except (BotoCoreError, ClientError) as e:
            raise TransferError(f"GetObject {bucket}/{key}: {e}") from e
        except OSError as e:
            raise TransferError(f"writing {path}: {e}") from e

        logger.debug("Downloaded %s/%s to %s (%d bytes)", bucket, key, path, written)
        return written
