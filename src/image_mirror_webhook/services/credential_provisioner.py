"""
Pull secret provisioning.

Ensures the namespace holds the dockerconfigjson secret for the mirror:

    read -> found:     done
         -> not found: create -> created:        done
                              -> already exists: done (a concurrent request won)
                              -> other error:    ProvisioningError
         -> other error:                         ProvisioningError

Concurrent admissions in a fresh namespace race between read and create.
Every replica derives the same secret name and content, so a 409 on create
means the namespace already converged and is treated as success.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from kubernetes import client
from kubernetes.client.rest import ApiException

from image_mirror_webhook.constants import DEFAULT_KUBE_API_TIMEOUT
from image_mirror_webhook.errors import KubernetesAPIError, ProvisioningError
from image_mirror_webhook.models.credential import DockerConfigSecret
from image_mirror_webhook.observability.metrics import metrics_collector
from image_mirror_webhook.settings import MirrorConfig

logger = logging.getLogger(__name__)

OUTCOME_EXISTING = "existing"
OUTCOME_CREATED = "created"
OUTCOME_CONVERGED = "converged"
OUTCOME_FAILED = "failed"


class CredentialProvisioner:
    """Ensures namespace pull secrets exist, idempotently."""

    def __init__(
        self,
        config: MirrorConfig,
        k8s_client: client.ApiClient | None = None,
        timeout: float = DEFAULT_KUBE_API_TIMEOUT,
    ):
        """
        Initialize credential provisioner.

        Args:
            config: Mirror configuration holding the pull credential
            k8s_client: Optional Kubernetes API client
            timeout: Deadline in seconds for each Kubernetes API call
        """
        self.config = config
        self.k8s_client = k8s_client
        self.timeout = timeout
        self._v1: client.CoreV1Api | None = None

    @property
    def v1(self) -> client.CoreV1Api:
        """Get CoreV1Api client."""
        if self._v1 is None:
            if self.k8s_client:
                self._v1 = client.CoreV1Api(self.k8s_client)
            else:
                self._v1 = client.CoreV1Api()
        return self._v1

    @property
    def secret_name(self) -> str:
        return self.config.secret_name

    def build_secret(self, namespace: str) -> DockerConfigSecret:
        """Build the pull secret for a namespace."""
        return DockerConfigSecret.for_credential(
            namespace=namespace,
            credential=self.config.pull_credential(),
            owner=self.config.owner,
            prefix=self.config.secret_name_prefix,
        )

    async def _call(
        self, action: str, deadline: float, fn: Callable[..., Any], **kwargs: Any
    ) -> Any:
        """
        Run a blocking client call in a worker thread, bounded by what is
        left of the deadline shared by all calls of one ensure_pull_secret.

        ApiException is passed through for status handling by the caller;
        anything else becomes a ProvisioningError.
        """
        name = self.secret_name
        namespace = kwargs["namespace"]
        try:
            remaining = deadline - asyncio.get_running_loop().time()
            if remaining <= 0:
                raise TimeoutError
            return await asyncio.wait_for(
                asyncio.to_thread(fn, _request_timeout=remaining, **kwargs),
                timeout=remaining,
            )
        except ApiException:
            raise
        except TimeoutError as e:
            raise ProvisioningError(
                f"Timed out {action} secret {namespace}/{name}, "
                f"{self.timeout}s budget exhausted",
                namespace=namespace,
                secret_name=name,
                reason="Timeout",
                cause=e,
            ) from e
        except Exception as e:
            raise ProvisioningError(
                f"Failed {action} secret {namespace}/{name}: {e}",
                namespace=namespace,
                secret_name=name,
                reason=type(e).__name__,
                cause=e,
            ) from e

    async def ensure_pull_secret(self, namespace: str) -> str:
        """
        Ensure the pull secret exists in a namespace.

        Existing secrets are never updated. The read and the create share a
        single timeout budget, so the whole operation finishes within
        ``timeout`` seconds.

        Args:
            namespace: Target namespace

        Returns:
            Name of the pull secret

        Raises:
            ProvisioningError: If the secret could not be read or created
        """
        name = self.secret_name
        deadline = asyncio.get_running_loop().time() + self.timeout
        try:
            outcome = await self._ensure(name, namespace, deadline)
        except ProvisioningError:
            metrics_collector.record_secret_provisioning(OUTCOME_FAILED)
            raise
        metrics_collector.record_secret_provisioning(outcome)
        return name

    async def _ensure(self, name: str, namespace: str, deadline: float) -> str:
        try:
            await self._call(
                "reading",
                deadline,
                self.v1.read_namespaced_secret,
                name=name,
                namespace=namespace,
            )
            logger.debug(
                f"Pull secret {namespace}/{name} already exists",
                extra={"namespace": namespace, "secret_name": name},
            )
            return OUTCOME_EXISTING
        except ApiException as e:
            if e.status != 404:
                raise KubernetesAPIError(
                    f"Failed to read secret {namespace}/{name}",
                    namespace=namespace,
                    secret_name=name,
                    status=e.status,
                    reason=e.reason,
                    cause=e,
                ) from e

        secret = self.build_secret(namespace)
        try:
            await self._call(
                "creating",
                deadline,
                self.v1.create_namespaced_secret,
                namespace=namespace,
                body=secret.to_body(),
            )
        except ApiException as e:
            if e.status == 409:
                # Already exists (race with a concurrent admission)
                logger.info(
                    f"Pull secret {namespace}/{name} was created concurrently",
                    extra={"namespace": namespace, "secret_name": name},
                )
                return OUTCOME_CONVERGED
            raise KubernetesAPIError(
                f"Failed to create secret {namespace}/{name}",
                namespace=namespace,
                secret_name=name,
                status=e.status,
                reason=e.reason,
                cause=e,
            ) from e

        logger.info(
            f"Pull secret {namespace}/{name} created ({secret.type})",
            extra={"namespace": namespace, "secret_name": name},
        )
        return OUTCOME_CREATED
