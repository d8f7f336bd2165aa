"""JSON-patch construction for pod mutations."""

from collections.abc import Sequence

from image_mirror_webhook.constants import (
    CONTAINERS_FIELD,
    IMAGE_PULL_SECRETS_FIELD,
    INIT_CONTAINERS_FIELD,
    PATCH_OP_ADD,
    PATCH_OP_REPLACE,
)
from image_mirror_webhook.models.patch import (
    CredentialReference,
    ImageRewrite,
    PatchOperation,
    json_pointer,
)


def image_patches(field: str, rewrites: Sequence[ImageRewrite]) -> list[PatchOperation]:
    """
    Build ``replace`` operations for the rewritten images of one container list.

    Args:
        field: Pod spec field holding the containers
        rewrites: Normalization outcomes in index order

    Returns:
        One operation per changed image
    """
    return [
        PatchOperation(
            op=PATCH_OP_REPLACE,
            path=json_pointer("spec", field, rewrite.index, "image"),
            value=rewrite.normalized,
        )
        for rewrite in rewrites
        if rewrite.changed
    ]


def pull_secret_patch(credential: CredentialReference) -> PatchOperation:
    """
    Build the operation referencing the pull secret from the pod.

    An absent ``imagePullSecrets`` list is created; an existing one is
    appended to.
    """
    reference = {"name": credential.secret_name}
    if credential.pull_secrets_present:
        return PatchOperation(
            op=PATCH_OP_ADD,
            path=json_pointer("spec", IMAGE_PULL_SECRETS_FIELD, "-"),
            value=reference,
        )
    return PatchOperation(
        op=PATCH_OP_ADD,
        path=json_pointer("spec", IMAGE_PULL_SECRETS_FIELD),
        value=[reference],
    )


def build_patches(
    containers: Sequence[ImageRewrite],
    init_containers: Sequence[ImageRewrite],
    credential: CredentialReference | None = None,
) -> list[PatchOperation]:
    """
    Assemble the full patch for one pod.

    Order: main container images, init container images, then the pull
    secret reference (only when a credential reference is given).

    Args:
        containers: Rewrites for ``spec.containers``
        init_containers: Rewrites for ``spec.initContainers``
        credential: Pull secret to reference, or None to leave the list alone

    Returns:
        Ordered patch operations
    """
    patches = image_patches(CONTAINERS_FIELD, containers)
    patches.extend(image_patches(INIT_CONTAINERS_FIELD, init_containers))
    if credential is not None:
        patches.append(pull_secret_patch(credential))
    return patches
