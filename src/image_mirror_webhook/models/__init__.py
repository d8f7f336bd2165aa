"""
Pydantic models for the image mirror webhook.
"""

from .admission import (
    POD_GVR,
    AdmissionContext,
    AdmissionRequest,
    AdmissionReview,
    GroupVersionResource,
)
from .credential import DockerConfigSecret, PullCredential, format_secret_name
from .image import ImageReference, contains_domain
from .patch import CredentialReference, ImageRewrite, PatchOperation, json_pointer
from .pod import Container, LocalObjectReference, PodDocument, PodSpec

__all__ = [
    "POD_GVR",
    "AdmissionContext",
    "AdmissionRequest",
    "AdmissionReview",
    "GroupVersionResource",
    "DockerConfigSecret",
    "PullCredential",
    "format_secret_name",
    "ImageReference",
    "contains_domain",
    "CredentialReference",
    "ImageRewrite",
    "PatchOperation",
    "json_pointer",
    "Container",
    "LocalObjectReference",
    "PodDocument",
    "PodSpec",
]
