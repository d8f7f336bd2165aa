"""
Admission webhooks for the image mirror webhook.

The mutating pod webhook is served by an aiohttp application rather than
kopf's admission server: kopf derives JSON patches from merge-style patch
objects, which cannot express the index-addressed image replacements and the
``imagePullSecrets/-`` append the mutation core produces.
"""

from .admission import AdmissionServer, encode_patch, review_response

__all__ = ["AdmissionServer", "encode_patch", "review_response"]
