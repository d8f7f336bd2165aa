"""
JSON-patch models produced by the mutation core.

The admission server serializes these into the ``patch`` field of the
AdmissionReview response; the core never builds wire payloads itself.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from image_mirror_webhook.constants import PATCH_OP_REMOVE


def json_pointer(*segments: str | int) -> str:
    """
    Build an RFC 6901 JSON pointer from path segments.

    Args:
        segments: Object keys or array indices, outermost first

    Returns:
        Pointer string such as ``/spec/containers/0/image``
    """
    escaped = (str(s).replace("~", "~0").replace("/", "~1") for s in segments)
    return "".join(f"/{s}" for s in escaped)


class PatchOperation(BaseModel):
    """A single JSON-patch operation."""

    model_config = {"frozen": True}

    op: Literal["add", "replace", "remove"] = Field(..., description="Operation")
    path: str = Field(..., description="JSON pointer of the target location")
    value: Any = Field(None, description="Payload for add and replace")

    def to_dict(self) -> dict[str, Any]:
        """Return the operation as a JSON-serializable dict."""
        if self.op == PATCH_OP_REMOVE:
            return {"op": self.op, "path": self.path}
        return {"op": self.op, "path": self.path, "value": self.value}


class ImageRewrite(BaseModel):
    """Normalization outcome for one container."""

    model_config = {"frozen": True}

    index: int = Field(..., ge=0, description="Position in the decoded array")
    original: str = Field(..., description="Image as submitted")
    normalized: str = Field(..., description="Image after normalization")

    @property
    def changed(self) -> bool:
        return self.original != self.normalized


class CredentialReference(BaseModel):
    """Decision to reference the namespace pull secret from the pod."""

    model_config = {"frozen": True}

    secret_name: str = Field(..., description="Name of the pull secret")
    pull_secrets_present: bool = Field(
        ..., description="Whether the pod already has an imagePullSecrets list"
    )
