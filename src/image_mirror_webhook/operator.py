#!/usr/bin/env python3
"""
Image Mirror Webhook - main entry point.

Kopf hosts the process lifecycle: the startup handler builds the mutation
core from settings and starts the admission and metrics servers; the cleanup
handler stops them.

Usage:
    python -m image_mirror_webhook.operator
    # Or with kopf directly:
    kopf run -m image_mirror_webhook.operator --all-namespaces

Environment Variables:
    MIRROR_REGISTRY: Registry that unqualified images are routed through
    PULL_USERNAME / PULL_PASSWORD: Credential stored in namespace pull secrets
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
"""

import logging
import os
import sys

import kopf
from kubernetes import config

from image_mirror_webhook.constants import LIVENESS_ENDPOINT
from image_mirror_webhook.errors import ConfigurationError
from image_mirror_webhook.observability.logging import setup_structured_logging
from image_mirror_webhook.observability.metrics import MetricsServer
from image_mirror_webhook.services.credential_provisioner import CredentialProvisioner
from image_mirror_webhook.services.pod_mutator import PodMutator
from image_mirror_webhook.settings import Settings
from image_mirror_webhook.settings import settings as webhook_settings
from image_mirror_webhook.webhooks.admission import AdmissionServer


def configure_logging() -> None:
    """Configure structured logging based on webhook_settings."""
    setup_structured_logging(
        log_level=webhook_settings.log_level.upper(),
        enable_json_formatting=webhook_settings.json_logs,
        correlation_id_enabled=webhook_settings.correlation_ids,
        log_health_probes=webhook_settings.log_health_probes,
    )


def load_kubernetes_config() -> None:
    """Load in-cluster configuration, falling back to kubeconfig."""
    try:
        config.load_incluster_config()
        logging.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            config.load_kube_config()
            logging.info("Loaded kubeconfig configuration")
        except config.ConfigException:
            logging.error("Failed to load Kubernetes configuration")
            raise


def build_admission_server(settings: Settings) -> AdmissionServer:
    """
    Build the admission server and the mutation core behind it.

    Raises:
        ConfigurationError: If the mirror settings are invalid
    """
    mirror_config = settings.mirror_config()
    if not mirror_config.password.get_secret_value():
        logging.warning(
            "PULL_PASSWORD is empty; pull secrets will carry an empty password"
        )

    provisioner = CredentialProvisioner(
        mirror_config, timeout=settings.kube_api_timeout_seconds
    )
    mutator = PodMutator(mirror_config, provisioner)

    certfile = keyfile = None
    if settings.tls_cert_file and os.path.exists(settings.tls_cert_file):
        certfile = settings.tls_cert_file
        keyfile = settings.tls_key_file
    else:
        logging.warning(
            f"TLS certificate {settings.tls_cert_file!r} not found, serving plain HTTP"
        )

    logging.info(
        f"Routing unqualified images through {mirror_config.registry}, "
        f"pull secret {mirror_config.secret_name}"
    )
    return AdmissionServer(
        mutator,
        port=settings.webhook_port,
        host=settings.webhook_host,
        certfile=certfile,
        keyfile=keyfile,
    )


@kopf.on.startup()
async def startup_handler(
    settings: kopf.OperatorSettings, memo: kopf.Memo, **_
) -> None:
    """
    Webhook startup.

    - Standalone peering: replicas never coordinate, secret creation
      converges through the API server instead
    - Kubernetes client configuration
    - Mutation core, admission server and metrics server
    """
    logging.info("Starting image mirror webhook...")
    settings.peering.standalone = True
    settings.posting.enabled = False

    load_kubernetes_config()

    try:
        admission_server = build_admission_server(webhook_settings)
    except ConfigurationError as e:
        logging.error(f"Invalid configuration: {e}")
        raise e.as_kopf_error() from e

    await admission_server.start()
    memo.admission_server = admission_server

    try:
        metrics_server = MetricsServer(
            port=webhook_settings.metrics_port, host=webhook_settings.metrics_host
        )
        await metrics_server.start()
        memo.metrics_server = metrics_server
    except Exception as e:
        logging.error(f"Failed to start metrics server: {e}")
        # Don't fail startup if metrics server fails
        logging.warning("Continuing without metrics server")


@kopf.on.cleanup()
async def cleanup_handler(memo: kopf.Memo, **_) -> None:
    """Stop the admission and metrics servers."""
    logging.info("Shutting down image mirror webhook...")

    for attr in ("admission_server", "metrics_server"):
        server = getattr(memo, attr, None)
        if server is None:
            continue
        try:
            await server.stop()
        except Exception as e:
            logging.error(f"Error stopping {attr}: {e}")


@kopf.on.probe(id="healthz")
async def health_check(memo: kopf.Memo, **_) -> dict[str, str]:
    """
    Liveness probe.

    Returns:
        Dictionary reporting whether the admission server is serving
    """
    server = getattr(memo, "admission_server", None)
    status = "healthy" if server is not None and server.running else "unhealthy"
    return {"status": status, "component": "image-mirror-webhook"}


def main() -> None:
    """
    Main entry point.

    Configures logging and runs kopf, which drives the startup and cleanup
    handlers above.
    """
    configure_logging()

    kopf_settings = kopf.OperatorSettings()
    kopf_settings.admission.server = None
    kopf_settings.admission.managed = None

    try:
        kopf.run(
            clusterwide=True,
            standalone=True,
            liveness_endpoint=LIVENESS_ENDPOINT,
            settings=kopf_settings,
        )
    except KeyboardInterrupt:
        logging.info("Received shutdown signal")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Webhook failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
