"""
Pull credential and dockerconfigjson secret models.

The secret name is derived from the pull username alone, so every replica
of the webhook agrees on it without coordination.
"""

import base64
import hashlib
import json
import re
from typing import Any

from pydantic import BaseModel, Field, SecretStr

from image_mirror_webhook.constants import (
    DEFAULT_SECRET_NAME_PREFIX,
    DOCKER_CONFIG_JSON_KEY,
    MAX_SECRET_NAME_LENGTH,
    OWNER_LABEL_KEY,
    SECRET_NAME_DIGEST_LENGTH,
    SECRET_TYPE_DOCKER_CONFIG_JSON,
)

_NAME_SAFE_CHARS = frozenset("abcdefghijklmnopqrstuvwyz0123456789")

# DNS-1123 subdomain, the name format Kubernetes requires for secrets
SECRET_NAME_PATTERN = re.compile(
    r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"
)


def format_secret_name(
    username: str, prefix: str = DEFAULT_SECRET_NAME_PREFIX
) -> str:
    """
    Derive the pull secret name for a registry username.

    Characters outside ``[a-z0-9]``, and the escape marker ``x`` itself, are
    written as ``x`` plus two hex digits, or ``xu`` plus six hex digits above
    U+00FF: ``robot$ci`` becomes ``robotx24ci``. The escaped username only
    contains letters and digits, so it is always a valid name label, and
    distinct usernames always produce distinct names.

    Names longer than the Kubernetes limit are truncated and suffixed with
    a digest of the full name.

    Args:
        username: Registry username (Harbor robot accounts contain '$')
        prefix: Name prefix

    Returns:
        Secret name
    """
    escaped = []
    for char in username:
        if char in _NAME_SAFE_CHARS:
            escaped.append(char)
        elif ord(char) <= 0xFF:
            escaped.append(f"x{ord(char):02x}")
        else:
            escaped.append(f"xu{ord(char):06x}")
    name = f"{prefix}{''.join(escaped)}"

    if len(name) > MAX_SECRET_NAME_LENGTH:
        digest = hashlib.sha256(name.encode()).hexdigest()[:SECRET_NAME_DIGEST_LENGTH]
        keep = MAX_SECRET_NAME_LENGTH - SECRET_NAME_DIGEST_LENGTH - 1
        name = f"{name[:keep].rstrip('.-')}-{digest}"
    return name


class PullCredential(BaseModel):
    """Registry authentication material for one registry."""

    model_config = {"frozen": True}

    registry_url: str = Field(..., description="Registry auth endpoint URL")
    username: str = Field(..., description="Registry username")
    password: SecretStr = Field(..., description="Registry password or token")
    email: str = Field(..., description="Email recorded with the credential")

    @property
    def auth(self) -> str:
        """Base64 of ``username:password``, as docker clients expect."""
        raw = f"{self.username}:{self.password.get_secret_value()}"
        return base64.b64encode(raw.encode()).decode()

    def docker_config(self) -> dict[str, Any]:
        """Return the ``.dockerconfigjson`` document for this credential."""
        return {
            "auths": {
                self.registry_url: {
                    "username": self.username,
                    "password": self.password.get_secret_value(),
                    "email": self.email,
                    "auth": self.auth,
                }
            }
        }


class DockerConfigSecret(BaseModel):
    """A namespace-scoped dockerconfigjson pull secret."""

    model_config = {"frozen": True}

    namespace: str = Field(..., description="Namespace of the secret")
    name: str = Field(..., description="Secret name")
    labels: dict[str, str] = Field(default_factory=dict)
    type: str = Field(SECRET_TYPE_DOCKER_CONFIG_JSON)
    credential: PullCredential = Field(..., description="Credential to store")

    @classmethod
    def for_credential(
        cls,
        namespace: str,
        credential: PullCredential,
        owner: str,
        prefix: str = DEFAULT_SECRET_NAME_PREFIX,
    ) -> "DockerConfigSecret":
        """Build the secret for a credential in the given namespace."""
        return cls(
            namespace=namespace,
            name=format_secret_name(credential.username, prefix),
            labels={OWNER_LABEL_KEY: owner},
            credential=credential,
        )

    def payload(self) -> bytes:
        """Serialized ``.dockerconfigjson`` document."""
        return json.dumps(self.credential.docker_config()).encode()

    def to_body(self) -> dict[str, Any]:
        """Return the Kubernetes API body used to create the secret."""
        return {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {
                "name": self.name,
                "namespace": self.namespace,
                "labels": dict(self.labels),
            },
            "type": self.type,
            "data": {DOCKER_CONFIG_JSON_KEY: base64.b64encode(self.payload()).decode()},
        }
