"""Builders for the messages the method sends back to APT.

Example of a completed download::

    201 URI Done
    URI: s3://s3.amazonaws.com/apt-repo/pool/main/r/riemann-sumd_0.7.2-1_all.deb
    Filename: /var/cache/apt/archives/partial/riemann-sumd_0.7.2-1_all.deb
    Size: 9012
    Last-Modified: Thu, 25 Oct 2018 20:17:39 GMT
    MD5-Hash: 1964cb59e339e7a41cf64e9d40f219b1
    MD5Sum-Hash: 1964cb59e339e7a41cf64e9d40f219b1
    SHA1-Hash: 0d02ab49503be20d153cea63a472c43ebfad2efc
    SHA256-Hash: 92a3f70eb1cf2c69880988a8e74dc6fea7e4f15ee261f74b9be55c866f69c64b
    SHA512-Hash: ab3b1c94618cb58e2147db1c1d4bd3472f17fb11b1361e77216b461ab7d5f59...
"""

import email.utils
import hashlib
from datetime import datetime, timezone
from pathlib import Path

from apt_s3.message import Field, Header, Message, StatusCode

# Streaming chunk size for hashing: 64 KB
_CHUNK_SIZE = 64 * 1024

NOT_FOUND_TEXT = "The specified key does not exist."

# APT accepts both MD5 names; each gets its own field.
_HASH_FIELDS = (
    ("MD5-Hash", "md5"),
    ("MD5Sum-Hash", "md5"),
    ("SHA1-Hash", "sha1"),
    ("SHA256-Hash", "sha256"),
    ("SHA512-Hash", "sha512"),
)


def _message(code: StatusCode, description: str, *fields: tuple[str, str]) -> Message:
    return Message(
        header=Header(status=int(code), description=description),
        fields=[Field(name=name, value=value) for name, value in fields],
    )


def http_date(dt: datetime) -> str:
    """Format a timestamp as an RFC 1123 date in GMT.

    Naive datetimes are taken to be UTC.

    Returns:
        A string like ``Thu, 25 Oct 2018 20:17:39 GMT``.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return email.utils.format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def file_hashes(path: str | Path) -> dict[str, str]:
    """Digest a file with every algorithm APT checks.

    Args:
        path: The downloaded file.

    Returns:
        Mapping of hash field name to lowercase hex digest.
    """
    digests = {algo: hashlib.new(algo) for _, algo in _HASH_FIELDS}
    with open(path, "rb") as fh:
        while True:
            chunk = fh.read(_CHUNK_SIZE)
            if not chunk:
                break
            for digest in digests.values():
                digest.update(chunk)
    return {name: digests[algo].hexdigest() for name, algo in _HASH_FIELDS}


def capabilities() -> Message:
    return _message(
        StatusCode.CAPABILITIES,
        "Capabilities",
        ("Send-Config", "true"),
        ("Pipeline", "true"),
        ("Single-Instance", "yes"),
    )


def general_log(text: str) -> Message:
    """A ``101 Log`` message; APT only shows these with ``Debug::Acquire``."""
    return _message(StatusCode.LOG, "Log", ("Message", text))


def status(uri: str, text: str) -> Message:
    return _message(StatusCode.STATUS, "Status", ("URI", uri), ("Message", text))


def uri_start(uri: str, size: int, last_modified: datetime) -> Message:
    return _message(
        StatusCode.URI_START,
        "URI Start",
        ("URI", uri),
        ("Size", str(size)),
        ("Last-Modified", http_date(last_modified)),
    )


def uri_done(uri: str, filename: str, size: int, last_modified: datetime) -> Message:
    """Build ``201 URI Done``, hashing ``filename`` on disk.

    Raises:
        OSError: If the downloaded file cannot be read.
    """
    hashes = file_hashes(filename)
    return _message(
        StatusCode.URI_DONE,
        "URI Done",
        ("URI", uri),
        ("Filename", filename),
        ("Size", str(size)),
        ("Last-Modified", http_date(last_modified)),
        *hashes.items(),
    )


def not_found(uri: str) -> Message:
    return _message(
        StatusCode.URI_FAILURE,
        "URI Failure",
        ("Message", NOT_FOUND_TEXT),
        ("URI", uri),
    )


def general_failure(error: BaseException | str) -> Message:
    """Build ``401 General Failure``; newlines would break framing, so they
    are collapsed to spaces."""
    text = str(error).replace("\n", " ")
    return _message(StatusCode.GENERAL_FAILURE, "General Failure", ("Message", text))
