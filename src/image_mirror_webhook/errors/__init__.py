"""
Error handling module for the image mirror webhook.

Decode errors fail the admission request closed; provisioning errors are
recovered and the pod is admitted without the pull secret reference.
"""

from .webhook_errors import (
    ConfigurationError,
    DecodeError,
    KubernetesAPIError,
    ProvisioningError,
    WebhookError,
)

__all__ = [
    "WebhookError",
    "DecodeError",
    "ProvisioningError",
    "KubernetesAPIError",
    "ConfigurationError",
]
