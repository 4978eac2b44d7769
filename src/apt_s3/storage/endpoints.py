"""Region to S3 endpoint hostname resolution, backed by botocore's data."""

import logging

from botocore.exceptions import BotoCoreError
from botocore.loaders import create_loader
from botocore.regions import EndpointResolver

from apt_s3.errors import ResolutionError

logger = logging.getLogger(__name__)

# botocore talks to the legacy global endpoint for us-east-1 unless
# regional endpoints are switched on; URIs written for APT use it too.
_GLOBAL_REGION = "us-east-1"
_GLOBAL_HOSTNAME = "s3.amazonaws.com"

_resolver: EndpointResolver | None = None


def _get_resolver() -> EndpointResolver:
    global _resolver
    if _resolver is None:
        _resolver = EndpointResolver(create_loader().load_data("endpoints"))
    return _resolver


def resolve_endpoint(region: str) -> str:
    """Return the S3 endpoint hostname for ``region``.

    Args:
        region: An AWS region name, e.g. ``us-west-2``.

    Returns:
        The hostname, e.g. ``s3.us-west-2.amazonaws.com``.

    Raises:
        ResolutionError: If botocore does not know the region.
    """
    if region == _GLOBAL_REGION:
        return _GLOBAL_HOSTNAME

    try:
        endpoint = _get_resolver().construct_endpoint("s3", region)
    except (BotoCoreError, ValueError) as e:
        raise ResolutionError(f"resolving S3 endpoint for region {region}: {e}") from e

    if not endpoint or not endpoint.get("hostname"):
        raise ResolutionError(
            f"resolving S3 endpoint for region {region}: unknown region"
        )
    logger.debug("Resolved S3 endpoint for %s: %s", region, endpoint["hostname"])
    return endpoint["hostname"]
