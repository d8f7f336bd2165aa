"""
The subset of a Pod object the webhook reads.

Unknown fields are ignored; the webhook only needs container images and the
pull secret list. ``imagePullSecrets`` keeps the difference between an
absent list (``None``) and an empty one, because they need different patches.
"""

from pydantic import BaseModel, Field


class Container(BaseModel):
    """A container or init container entry."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    name: str = Field("", description="Container name")
    image: str | None = Field(None, description="Image reference")


class LocalObjectReference(BaseModel):
    """Reference to an object in the pod's namespace."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    name: str = Field("", description="Referenced object name")


class PodSpec(BaseModel):
    model_config = {"populate_by_name": True, "extra": "ignore"}

    containers: list[Container] | None = Field(None)
    init_containers: list[Container] | None = Field(None, alias="initContainers")
    image_pull_secrets: list[LocalObjectReference] | None = Field(
        None, alias="imagePullSecrets"
    )


class PodMetadata(BaseModel):
    model_config = {"populate_by_name": True, "extra": "ignore"}

    name: str | None = Field(None)
    generate_name: str | None = Field(None, alias="generateName")
    namespace: str | None = Field(None)

    @property
    def display_name(self) -> str:
        """Name for log messages; pods created by controllers only have generateName."""
        return self.name or self.generate_name or "<unnamed>"


class PodDocument(BaseModel):
    """A decoded Pod object."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    api_version: str | None = Field(None, alias="apiVersion")
    kind: str | None = Field(None)
    metadata: PodMetadata = Field(default_factory=PodMetadata)
    spec: PodSpec = Field(..., description="Pod specification")
