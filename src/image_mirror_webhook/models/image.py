"""
Container image reference model.

An image reference has the shape ``[registry/]path[:tag][@digest]``. Whether
the leading segment is a registry is decided by :func:`contains_domain`, a
deliberately narrow heuristic kept for compatibility with references already
admitted by earlier releases. Known misclassifications:

- ``library/busybox`` and other un-dotted Docker Hub namespaces are treated
  as unqualified (correct, they live on Docker Hub)
- ``localhost:5000/img`` and other single-label hosts are treated as
  unqualified and get the mirror prefixed
- hosts with more than two dots (``1234.dkr.ecr.us-east-1.amazonaws.com``)
  are treated as unqualified
"""

import re

from pydantic import BaseModel, Field

# label "." (tld | label "." tld) [":" port] "/"
DOMAIN_PATTERN = re.compile(
    r"^(([a-zA-Z]{1})|([a-zA-Z]{1}[a-zA-Z]{1})|([a-zA-Z]{1}[0-9]{1})"
    r"|([0-9]{1}[a-zA-Z]{1})|([a-zA-Z0-9][a-zA-Z0-9_-]{1,61}[a-zA-Z0-9]))"
    r"\.([a-zA-Z]{2,6}|[a-zA-Z0-9-]{2,30}\.[a-zA-Z]{2,3})"
    r"(:[0-9]{1,5})?/"
)


def contains_domain(reference: str) -> bool:
    """Return True if the reference starts with a registry host followed by '/'."""
    return DOMAIN_PATTERN.match(reference) is not None


class ImageReference(BaseModel):
    """A container image reference split into its parts."""

    model_config = {"frozen": True}

    domain: str | None = Field(None, description="Registry host (and port)")
    path: str = Field(..., description="Repository path, namespace included")
    tag: str | None = Field(None, description="Tag without the leading ':'")
    digest: str | None = Field(
        None, description="Content digest without the leading '@'"
    )

    @classmethod
    def parse(cls, reference: str) -> "ImageReference":
        """
        Split a reference into domain, path, tag and digest.

        Parsing is lossless: ``str(ImageReference.parse(ref)) == ref`` for
        every input.

        Args:
            reference: Image reference as written in the pod spec

        Returns:
            Parsed image reference
        """
        domain = None
        remainder = reference
        if contains_domain(reference):
            domain, _, remainder = reference.partition("/")

        head, slash, tail = remainder.rpartition("/")
        prefix = f"{head}{slash}"

        digest = None
        name, at, candidate = tail.partition("@")
        if at and ":" in candidate:
            digest = candidate
        else:
            name = tail

        tag = None
        if ":" in name:
            name, _, tag = name.partition(":")

        return cls(domain=domain, path=f"{prefix}{name}", tag=tag, digest=digest)

    @property
    def is_pinned(self) -> bool:
        """Whether the reference carries a tag or digest."""
        return self.tag is not None or self.digest is not None

    def __str__(self) -> str:
        reference = self.path
        if self.domain is not None:
            reference = f"{self.domain}/{reference}"
        if self.tag is not None:
            reference = f"{reference}:{self.tag}"
        if self.digest is not None:
            reference = f"{reference}@{self.digest}"
        return reference
