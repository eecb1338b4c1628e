"""
Resolution of image references into platform-specific images.

A digest may address a multi-platform image index (OCI image index or Docker
manifest list). Scan results are only available for the platform images the
index references, so the index is expanded into one reference per platform.
"""

import json
import logging
import threading
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import (
    ImageNotFoundException,
    OperationCancelledException,
    RegistryException,
)
from core.models import Platform, PlatformImageReference
from core.reference import ImageReference
from core.scanner_interface import ECRClient
from integrations.ecr_scan import describe_error

logger = logging.getLogger(__name__)

ECR_DOCKER_INDEX_MT = "application/vnd.docker.distribution.manifest.list.v2+json"
ECR_DOCKER_MANIFEST_MT = "application/vnd.docker.distribution.manifest.v2+json"
ECR_OCI_INDEX_MT = "application/vnd.oci.image.index.v1+json"
ECR_OCI_MANIFEST_MT = "application/vnd.oci.image.manifest.v1+json"

ALL_ACCEPTED = [
    ECR_OCI_INDEX_MT,
    ECR_DOCKER_INDEX_MT,
    ECR_OCI_MANIFEST_MT,
    ECR_DOCKER_MANIFEST_MT,
]

INDEX_MEDIA_TYPES = {ECR_OCI_INDEX_MT, ECR_DOCKER_INDEX_MT}

ATTESTATION_REFERENCE_TYPE = "attestation-manifest"


def extract_platform(manifest_ref: dict) -> Optional[Platform]:
    """
    Extract the platform of an index entry.

    Returns None for entries that are not runnable images: attestation
    manifests and entries without OS and architecture.
    """
    annotations = manifest_ref.get("annotations") or {}
    if annotations.get("vnd.docker.reference.type") == ATTESTATION_REFERENCE_TYPE:
        return None

    platform_info = manifest_ref.get("platform") or {}
    os_name = platform_info.get("os")
    architecture = platform_info.get("architecture")
    if not os_name or not architecture or (os_name, architecture) == ("unknown", "unknown"):
        return None

    return Platform(
        os=os_name,
        architecture=architecture,
        variant=platform_info.get("variant"),
    )


class PlatformResolver:
    """Expands a digest reference into the platform images it represents."""

    def __init__(self, client: ECRClient):
        self.client = client

    def resolve(
        self,
        image: ImageReference,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[PlatformImageReference]:
        """
        Resolve ``image`` into platform-specific references.

        Args:
            image: Digest reference to resolve
            cancel_event: Optional cancellation signal

        Returns:
            One reference per platform image of an index, in index order, or
            a single reference to ``image`` itself when it is not an index.
            An index without usable platforms yields an empty list.

        Raises:
            ImageNotFoundException: If the manifest does not exist
            RegistryException: For any other registry failure
        """
        manifest, media_type = self._get_manifest(image, cancel_event)

        media_type = (media_type or manifest.get("mediaType") or "").lower()
        if media_type not in INDEX_MEDIA_TYPES:
            logger.debug(f"{image.id()} is a single image ({media_type or 'unknown media type'})")
            return [PlatformImageReference(reference=image)]

        platform_images = []
        for manifest_ref in manifest.get("manifests") or []:
            digest = manifest_ref.get("digest")
            platform = extract_platform(manifest_ref)
            if not digest or platform is None:
                logger.debug(f"Skipping index entry {digest or '<no digest>'}: not a platform image")
                continue
            platform_images.append(
                PlatformImageReference(reference=image.with_digest(digest), platform=platform)
            )

        return platform_images

    def _get_manifest(
        self,
        image: ImageReference,
        cancel_event: Optional[threading.Event],
    ) -> tuple[dict, str]:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledException("BatchGetImage")

        try:
            response = self.client.batch_get_image(
                registryId=image.registry_id,
                repositoryName=image.name,
                imageIds=[{"imageDigest": image.digest}],
                acceptedMediaTypes=ALL_ACCEPTED,
            )
        except ClientError as e:
            logger.error(f"Failed to get manifest for {image}: {describe_error(e)}")
            raise RegistryException("BatchGetImage", describe_error(e)) from e
        except BotoCoreError as e:
            raise RegistryException("BatchGetImage", describe_error(e)) from e

        images = response.get("images") or []
        if not images:
            failures = response.get("failures") or []
            reason = failures[0].get("failureReason", "no manifest found") if failures else "no manifest found"
            raise ImageNotFoundException(str(image), reason)

        try:
            manifest = json.loads(images[0].get("imageManifest") or "{}")
        except json.JSONDecodeError as e:
            raise RegistryException("BatchGetImage", f"invalid manifest for {image}: {e}") from e

        return manifest, images[0].get("imageManifestMediaType", "")


__all__ = [
    "PlatformResolver",
    "extract_platform",
    "ALL_ACCEPTED",
]
