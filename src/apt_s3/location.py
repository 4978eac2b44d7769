"""Resolution of ``s3://`` URIs into bucket/key/credential triples.

Three addressing forms are supported, checked in this order:

    Path-style:           s3://s3.amazonaws.com/{bucket}/{key}
    Virtual-hosted-style: s3://{bucket}.s3.amazonaws.com/{key}
    Bare bucket host:     s3://{bucket}/{key}

Credentials may be embedded as ``s3://{access_key}:{secret}@host/...``.
AWS secrets can contain ``/``, which is not legal inside the userinfo part
of a URI, so slashes in the credentials are percent-encoded before parsing
and decoded again afterwards.
"""

from __future__ import annotations

import urllib.parse
from dataclasses import dataclass

from apt_s3.errors import ResolutionError


@dataclass(frozen=True)
class ObjectLocation:
    """Where a requested object lives.

    Attributes:
        uri: The request URI exactly as APT sent it.
        host: Host part of the URI (without credentials).
        bucket: The S3 bucket name.
        key: The object key within the bucket.
        access_key: Access key id embedded in the URI, if any.
        secret_key: Secret access key embedded in the URI, if any.
    """

    uri: str
    host: str
    bucket: str
    key: str
    access_key: str | None = None
    secret_key: str | None = None


def encode_credentials(uri: str) -> str:
    """Percent-encode ``/`` inside the ``key:secret@`` part of a URI.

    URIs without a ``key:secret`` userinfo are returned unchanged.
    """
    scheme_end = uri.find("://")
    if scheme_end < 0:
        return uri
    start = scheme_end + 3
    at = uri.find("@", start)
    if at < 0:
        return uri

    access_key, sep, secret = uri[start:at].partition(":")
    if not sep:
        return uri
    userinfo = access_key.replace("/", "%2F") + sep + secret.replace("/", "%2F")
    return uri[:start] + userinfo + uri[at:]


def resolve_location(uri: str, endpoint_host: str) -> ObjectLocation:
    """Split an S3 URI into bucket, key and credentials.

    Args:
        uri: The ``URI`` field of an acquire message.
        endpoint_host: Hostname of the S3 endpoint for the active region,
            e.g. ``s3.us-west-2.amazonaws.com``.

    Returns:
        The resolved ObjectLocation.

    Raises:
        ResolutionError: If the URI has no host, or a path-style URI has no
            key segment after the bucket.
    """
    parts = urllib.parse.urlsplit(encode_credentials(uri))
    host = parts.netloc.rpartition("@")[2]
    if not host:
        raise ResolutionError(f"URI has no host: {uri}")

    access_key = urllib.parse.unquote(parts.username) if parts.username else None
    secret_key = (
        urllib.parse.unquote(parts.password) if parts.password is not None else None
    )
    path = urllib.parse.unquote(parts.path)

    if host == endpoint_host:
        # "/bucket/a/b.deb" splits to ["", "bucket", "a", "b.deb"]
        tokens = path.split("/")
        if len(tokens) < 3:
            raise ResolutionError(
                f"location missing required number of tokens: {path!r}"
            )
        bucket = tokens[1]
        key = "/".join(tokens[2:])
    elif host.endswith("." + endpoint_host):
        bucket = host[: -len(endpoint_host) - 1]
        key = _strip_leading_slash(path)
    else:
        bucket = host
        key = _strip_leading_slash(path)

    return ObjectLocation(
        uri=uri,
        host=host,
        bucket=bucket,
        key=key,
        access_key=access_key,
        secret_key=secret_key,
    )


def _strip_leading_slash(path: str) -> str:
    return path[1:] if path.startswith("/") else path
