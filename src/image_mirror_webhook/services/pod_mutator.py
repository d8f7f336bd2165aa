"""
Pod mutation orchestration.

Drives normalization, pull secret provisioning and patch construction for
one admission request.

Failure policy:
- Undecodable pod objects raise DecodeError; the request must be rejected
- Pull secret provisioning failures are logged and the pod is admitted
  without the imagePullSecrets patch (image rewrites still apply)
"""

import logging
from collections.abc import Sequence

from pydantic import ValidationError

from image_mirror_webhook.constants import (
    CONTAINERS_FIELD,
    INIT_CONTAINERS_FIELD,
    POD_KIND,
)
from image_mirror_webhook.errors import DecodeError, ProvisioningError
from image_mirror_webhook.models.admission import POD_GVR, AdmissionContext
from image_mirror_webhook.models.patch import (
    CredentialReference,
    ImageRewrite,
    PatchOperation,
)
from image_mirror_webhook.models.pod import Container, PodDocument
from image_mirror_webhook.observability.metrics import metrics_collector
from image_mirror_webhook.services.credential_provisioner import CredentialProvisioner
from image_mirror_webhook.services.normalizer import normalize_image
from image_mirror_webhook.services.patch_builder import build_patches
from image_mirror_webhook.settings import MirrorConfig

logger = logging.getLogger(__name__)


def decode_pod(raw_object: bytes) -> PodDocument:
    """
    Decode a serialized Pod.

    Args:
        raw_object: JSON bytes of the admitted object

    Returns:
        Decoded pod

    Raises:
        DecodeError: If the bytes are not a JSON Pod with a spec
    """
    try:
        pod = PodDocument.model_validate_json(raw_object)
    except ValidationError as e:
        raise DecodeError(str(e), cause=e) from e

    if pod.kind is not None and pod.kind != POD_KIND:
        raise DecodeError(f"expected kind {POD_KIND}, got {pod.kind}")
    return pod


class PodMutator:
    """Computes the JSON patch for an admitted pod."""

    def __init__(self, config: MirrorConfig, provisioner: CredentialProvisioner):
        """
        Initialize pod mutator.

        Args:
            config: Mirror configuration
            provisioner: Pull secret provisioner
        """
        self.config = config
        self.provisioner = provisioner

    def rewrite_images(
        self, field: str, containers: Sequence[Container] | None
    ) -> list[ImageRewrite]:
        """
        Normalize the images of one container list.

        Containers with an empty or blank image are skipped; indices always
        refer to the position in the decoded list.
        """
        rewrites = []
        for index, container in enumerate(containers or []):
            image = container.image
            if not image or not image.strip():
                continue

            rewrite = ImageRewrite(
                index=index,
                original=image,
                normalized=normalize_image(image, self.config),
            )
            if rewrite.changed:
                logger.info(
                    f"Mutate image of {field}[{index}]: {rewrite.normalized}",
                    extra={
                        "container_type": field,
                        "container_index": index,
                        "image": rewrite.original,
                        "normalized_image": rewrite.normalized,
                    },
                )
                metrics_collector.record_image_rewrite(field)
            rewrites.append(rewrite)
        return rewrites

    async def credential_reference(
        self, namespace: str, pod: PodDocument
    ) -> CredentialReference | None:
        """
        Ensure the pull secret and decide how to reference it.

        Returns None when provisioning failed; the pod is then admitted
        without a pull secret reference.
        """
        try:
            secret_name = await self.provisioner.ensure_pull_secret(namespace)
        except ProvisioningError as e:
            logger.warning(
                f"Making pull secret failed, admitting pod without it: {e}",
                extra={
                    "namespace": namespace,
                    "secret_name": e.secret_name,
                    "error_type": type(e).__name__,
                },
            )
            return None

        return CredentialReference(
            secret_name=secret_name,
            pull_secrets_present=pod.spec.image_pull_secrets is not None,
        )

    async def mutate(self, context: AdmissionContext) -> list[PatchOperation]:
        """
        Compute the patch for an admission request.

        Args:
            context: Admission request context

        Returns:
            Ordered patch operations; empty for resources other than pods

        Raises:
            DecodeError: If the admitted object is not a decodable pod
        """
        if context.resource != POD_GVR:
            # Routing is configured for pods only; let anything else through.
            logger.warning(
                f"Expected resource to be {POD_GVR}, got {context.resource}",
                extra={"resource": str(context.resource), "request_uid": context.uid},
            )
            return []

        with metrics_collector.track_mutation():
            pod = decode_pod(context.raw_object)
            logger.debug(
                f"Pod {pod.metadata.display_name} admitted in {context.namespace}",
                extra={
                    "namespace": context.namespace,
                    "resource_name": pod.metadata.display_name,
                    "request_uid": context.uid,
                },
            )

            containers = self.rewrite_images(CONTAINERS_FIELD, pod.spec.containers)
            init_containers = self.rewrite_images(
                INIT_CONTAINERS_FIELD, pod.spec.init_containers
            )
            namespace = context.namespace or pod.metadata.namespace
            credential = None
            if namespace:
                credential = await self.credential_reference(namespace, pod)
            else:
                logger.warning(
                    "Admission request carries no namespace, skipping pull secret",
                    extra={"request_uid": context.uid},
                )

            return build_patches(containers, init_containers, credential)
