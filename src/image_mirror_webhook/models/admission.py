"""
Admission request models.

``AdmissionReview`` and ``AdmissionRequest`` describe the envelope the API
server posts to the webhook. The mutation core only ever sees the flattened
``AdmissionContext``.
"""

import json
from typing import Any, Literal

from pydantic import BaseModel, Field

from image_mirror_webhook.constants import (
    OPERATION_CREATE,
    POD_GROUP,
    POD_RESOURCE,
    POD_VERSION,
)


class GroupVersionResource(BaseModel):
    """API group, version and plural resource name."""

    model_config = {"frozen": True}

    group: str = Field("", description="API group, empty for the core group")
    version: str = Field(..., description="API version")
    resource: str = Field(..., description="Plural resource name")

    def __str__(self) -> str:
        if self.group:
            return f"{self.group}/{self.version}/{self.resource}"
        return f"{self.version}/{self.resource}"


POD_GVR = GroupVersionResource(
    group=POD_GROUP, version=POD_VERSION, resource=POD_RESOURCE
)


class AdmissionContext(BaseModel):
    """What the mutation core needs to know about one admission request."""

    model_config = {"frozen": True}

    uid: str = Field("", description="Admission request UID")
    namespace: str = Field(..., description="Namespace of the admitted object")
    resource: GroupVersionResource = Field(..., description="Admitted resource")
    operation: str = Field(OPERATION_CREATE, description="Admission operation")
    raw_object: bytes = Field(b"", description="Serialized admitted object")


class AdmissionRequest(BaseModel):
    """The ``request`` part of an AdmissionReview."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    uid: str = Field(..., description="Request UID, echoed in the response")
    resource: GroupVersionResource
    namespace: str = Field("")
    operation: str = Field(OPERATION_CREATE)
    object_: Any = Field(None, alias="object")

    def to_context(self) -> AdmissionContext:
        """Flatten the request for the mutation core."""
        return AdmissionContext(
            uid=self.uid,
            namespace=self.namespace,
            resource=self.resource,
            operation=self.operation,
            raw_object=json.dumps(self.object_).encode(),
        )


class AdmissionReview(BaseModel):
    """An AdmissionReview envelope as posted by the API server."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    api_version: Literal["admission.k8s.io/v1", "admission.k8s.io/v1beta1"] = Field(
        "admission.k8s.io/v1", alias="apiVersion"
    )
    kind: Literal["AdmissionReview"] = Field("AdmissionReview")
    request: AdmissionRequest
