"""
Mutating admission endpoint for pods.

Decodes the AdmissionReview posted by the API server, hands the request to
the PodMutator and encodes the resulting JSON patch into the response.

Responses:
- Envelope that is not an AdmissionReview: HTTP 400
- Operations other than CREATE: allowed, no patch
- Pod object that cannot be decoded: denied (fail-closed)
- Unexpected error: logged and allowed without a patch; only malformed pods
  are ever denied
- Otherwise: allowed, with a base64 JSONPatch when there is anything to patch
"""

import base64
import json
import logging
import ssl
from typing import Any

from aiohttp.web import (
    Application,
    AppRunner,
    Request,
    Response,
    TCPSite,
    json_response,
)
from pydantic import ValidationError

from image_mirror_webhook.constants import OPERATION_CREATE, PATCH_TYPE_JSON
from image_mirror_webhook.errors import DecodeError
from image_mirror_webhook.models.admission import AdmissionReview
from image_mirror_webhook.models.patch import PatchOperation
from image_mirror_webhook.observability.logging import set_correlation_id
from image_mirror_webhook.observability.metrics import metrics_collector
from image_mirror_webhook.services.pod_mutator import PodMutator

logger = logging.getLogger(__name__)


def encode_patch(patches: list[PatchOperation]) -> str:
    """Serialize patch operations to the base64 form AdmissionReview expects."""
    document = json.dumps([p.to_dict() for p in patches])
    return base64.b64encode(document.encode()).decode()


def review_response(
    review: AdmissionReview,
    allowed: bool = True,
    patches: list[PatchOperation] | None = None,
    code: int | None = None,
    message: str | None = None,
) -> dict[str, Any]:
    """
    Build the AdmissionReview response document.

    Args:
        review: The review being answered
        allowed: Whether the object is admitted
        patches: Patch operations to apply, if any
        code: Status code for denials
        message: Status message for denials

    Returns:
        AdmissionReview dict with ``response`` populated
    """
    response: dict[str, Any] = {"uid": review.request.uid, "allowed": allowed}
    if patches:
        response["patchType"] = PATCH_TYPE_JSON
        response["patch"] = encode_patch(patches)
    if code is not None or message is not None:
        status: dict[str, Any] = {}
        if code is not None:
            status["code"] = code
        if message is not None:
            status["message"] = message
        response["status"] = status

    return {
        "apiVersion": review.api_version,
        "kind": review.kind,
        "response": response,
    }


class AdmissionServer:
    """HTTP(S) server for the mutating admission webhook."""

    def __init__(
        self,
        mutator: PodMutator,
        port: int = 8443,
        host: str = "0.0.0.0",
        certfile: str | None = None,
        keyfile: str | None = None,
    ):
        """
        Initialize admission server.

        Args:
            mutator: Pod mutator computing the patches
            port: Port to listen on
            host: Host address to bind to
            certfile: TLS certificate; plain HTTP when omitted
            keyfile: TLS private key
        """
        self.mutator = mutator
        self.port = port
        self.host = host
        self.certfile = certfile
        self.keyfile = keyfile
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None

        self.app.router.add_post("/mutate", self._mutate_handler)
        self.app.router.add_get("/healthz", self._healthz_handler)

    @property
    def running(self) -> bool:
        return self.site is not None

    def _ssl_context(self) -> ssl.SSLContext | None:
        if not self.certfile:
            return None
        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        context.load_cert_chain(self.certfile, self.keyfile)
        return context

    async def _mutate_handler(self, request: Request) -> Response:
        """Handle POST /mutate from the API server."""
        try:
            review = AdmissionReview.model_validate(await request.json())
        except (ValueError, ValidationError) as e:
            logger.warning(f"Rejected malformed AdmissionReview: {e}")
            return json_response(
                {"error": "invalid AdmissionReview request"}, status=400
            )

        admission = review.request
        set_correlation_id(admission.uid[:8])
        log_extra = {
            "request_uid": admission.uid,
            "namespace": admission.namespace,
            "operation": admission.operation,
        }

        if admission.operation != OPERATION_CREATE:
            logger.debug(
                f"Skipping {admission.operation} request", extra=log_extra
            )
            metrics_collector.record_admission(admission.operation, "skipped")
            return json_response(review_response(review))

        try:
            patches = await self.mutator.mutate(admission.to_context())
        except DecodeError as e:
            logger.warning(f"Denying admission: {e}", extra=log_extra)
            metrics_collector.record_admission(admission.operation, "rejected")
            return json_response(
                review_response(review, allowed=False, code=400, message=str(e))
            )
        except Exception as e:
            logger.error(
                f"Mutation failed: {e}",
                extra={**log_extra, "error_type": type(e).__name__},
                exc_info=True,
            )
            metrics_collector.record_admission(admission.operation, "error")
            return json_response(review_response(review))

        result = "patched" if patches else "unchanged"
        metrics_collector.record_admission(admission.operation, result)
        logger.info(
            f"Admitted pod with {len(patches)} patch operations",
            extra={**log_extra, "patch_count": len(patches)},
        )
        return json_response(review_response(review, patches=patches))

    async def _healthz_handler(self, request: Request) -> Response:
        return Response(text="ok")

    async def start(self) -> None:
        """Start the admission server."""
        self.runner = AppRunner(self.app)
        await self.runner.setup()

        self.site = TCPSite(
            self.runner, self.host, self.port, ssl_context=self._ssl_context()
        )
        await self.site.start()

        scheme = "https" if self.certfile else "http"
        logger.info(f"Admission webhook listening on {scheme}://{self.host}:{self.port}/mutate")

    async def stop(self) -> None:
        """Stop the admission server."""
        if self.site:
            await self.site.stop()
            self.site = None

        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        logger.info("Admission server stopped")
