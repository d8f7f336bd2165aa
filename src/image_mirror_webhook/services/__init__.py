"""
Services package - the mutation core of the image mirror webhook.

Contains:
- normalizer: image reference normalization
- patch_builder: JSON-patch construction
- credential_provisioner: idempotent pull secret creation
- pod_mutator: orchestration of the above per admission request
"""

from .credential_provisioner import CredentialProvisioner
from .normalizer import contains_domain, normalize_image
from .patch_builder import build_patches
from .pod_mutator import PodMutator, decode_pod

__all__ = [
    "CredentialProvisioner",
    "PodMutator",
    "build_patches",
    "contains_domain",
    "decode_pod",
    "normalize_image",
]
