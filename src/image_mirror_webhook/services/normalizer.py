"""Image reference normalization.

Pure functions: no network, no cluster state.
"""

from image_mirror_webhook.models.image import ImageReference, contains_domain
from image_mirror_webhook.settings import MirrorConfig

__all__ = ["contains_domain", "normalize_image"]


def normalize_image(image: str, config: MirrorConfig) -> str:
    """
    Rewrite an image reference to its canonical mirror form.

    - References without a recognised registry get the mirror prefixed
    - References without tag or digest get the default tag appended

    Normalizing a normalized reference returns it unchanged, because the
    mirror itself is validated against the same domain check.

    Args:
        image: Non-empty image reference
        config: Mirror configuration

    Returns:
        Normalized image reference

    Examples:
        >>> normalize_image("busybox", config)  # mirror.example.com/lib
        'mirror.example.com/lib/busybox:latest'
        >>> normalize_image("docker.io/library/busybox:1.2", config)
        'docker.io/library/busybox:1.2'
    """
    reference = ImageReference.parse(image)

    if reference.domain is None:
        reference = ImageReference.parse(f"{config.registry}/{image}")

    if not reference.is_pinned:
        reference = reference.model_copy(update={"tag": config.default_tag})

    return str(reference)
