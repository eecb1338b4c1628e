"""
Parsing of ECR image locators.

Locators take the registry address form::

    <registryId>.dkr.ecr.<region>.amazonaws.com/<repository>[:<tag>|@<digest>]

Repository names may contain "/" and ".". A digest is only recognised when
it directly follows the repository name: in ``repo:tagged@sha256:abc`` the
whole ``tagged@sha256:abc`` is the tag.
"""

import re
from dataclasses import dataclass, replace
from typing import Optional

from core.exceptions import InvalidReferenceException

REGISTRY_IMAGE_PATTERN = re.compile(
    r"^(?P<registry_id>[^./]+)\.dkr\.ecr\.(?P<region>[^./]+)\.amazonaws\.com/"
    r"(?P<name>[^:@]+)"
    r"(?::(?P<tag>.+)|@(?P<digest>.+))?$"
)


@dataclass(frozen=True)
class ImageReference:
    """
    Parsed ECR image reference.

    Attributes:
        registry_id: AWS account ID of the registry
        region: AWS region of the registry
        name: Repository name
        tag: Image tag (cleared once resolved to a digest)
        digest: Image digest
    """

    registry_id: str
    region: str
    name: str
    tag: Optional[str] = None
    digest: Optional[str] = None

    @property
    def registry(self) -> str:
        """Registry host name."""
        return f"{self.registry_id}.dkr.ecr.{self.region}.amazonaws.com"

    def id(self) -> str:
        """Digest if present, else tag. Used as a stable annotation key."""
        return self.digest or self.tag or ""

    def with_digest(self, digest: str) -> "ImageReference":
        """Return a copy addressing ``digest``, with the tag cleared."""
        return replace(self, tag=None, digest=digest)

    def __str__(self) -> str:
        result = f"{self.registry}/{self.name}"
        if self.digest:
            return f"{result}@{self.digest}"
        if self.tag:
            return f"{result}:{self.tag}"
        return result


def parse_reference(locator: str) -> ImageReference:
    """
    Parse an ECR image locator into its components.

    Args:
        locator: Registry image locator

    Returns:
        ImageReference with parsed components

    Raises:
        InvalidReferenceException: If the locator does not match the grammar

    Examples:
        >>> parse_reference("123456789012.dkr.ecr.us-west-2.amazonaws.com/test-repo:latest")
        ImageReference(registry_id='123456789012', region='us-west-2', name='test-repo', tag='latest', digest=None)

        >>> parse_reference("123456789012.dkr.ecr.us-west-2.amazonaws.com/test-repo@sha256:hash")
        ImageReference(registry_id='123456789012', region='us-west-2', name='test-repo', tag=None, digest='sha256:hash')
    """
    match = REGISTRY_IMAGE_PATTERN.match((locator or "").strip())
    if match is None:
        raise InvalidReferenceException(locator)

    return ImageReference(
        registry_id=match.group("registry_id"),
        region=match.group("region"),
        name=match.group("name"),
        tag=match.group("tag"),
        digest=match.group("digest"),
    )


__all__ = [
    "ImageReference",
    "parse_reference",
]
