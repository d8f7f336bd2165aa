"""Shared pytest fixtures for unit tests."""

import json
import threading

import pytest
from kubernetes.client.rest import ApiException

from image_mirror_webhook.models.admission import POD_GVR, AdmissionContext
from image_mirror_webhook.settings import MirrorConfig


class FakeCoreV1:
    """In-memory stand-in for the secret calls of CoreV1Api."""

    def __init__(self):
        self.secrets: dict[tuple[str, str], dict] = {}
        self.read_calls = 0
        self.create_calls = 0
        self._lock = threading.Lock()

    def read_namespaced_secret(self, name, namespace, **kwargs):
        self.read_calls += 1
        if (namespace, name) not in self.secrets:
            raise ApiException(status=404, reason="Not Found")
        return self.secrets[(namespace, name)]

    def create_namespaced_secret(self, namespace, body, **kwargs):
        with self._lock:
            return self._create(namespace, body)

    def _create(self, namespace, body):
        self.create_calls += 1
        key = (namespace, body["metadata"]["name"])
        if key in self.secrets:
            raise ApiException(status=409, reason="AlreadyExists")
        self.secrets[key] = body
        return body


class StaleReadCoreV1(FakeCoreV1):
    """Reads never see the secret, as when two admissions race."""

    def read_namespaced_secret(self, name, namespace, **kwargs):
        self.read_calls += 1
        raise ApiException(status=404, reason="Not Found")


@pytest.fixture
def mirror_config():
    """Mirror configuration used across tests."""
    return MirrorConfig(
        registry="mirror.example.com/lib",
        username="robot$ci",
        password="s3cret",
    )


@pytest.fixture
def fake_v1():
    return FakeCoreV1()


def make_pod(
    containers: list[str | None] | None = None,
    init_containers: list[str | None] | None = None,
    pull_secrets: list[str] | None = None,
) -> dict:
    """Build a Pod document with the given container images."""
    spec: dict = {
        "containers": [
            {"name": f"c{i}", **({"image": image} if image is not None else {})}
            for i, image in enumerate(containers or [])
        ]
    }
    if init_containers is not None:
        spec["initContainers"] = [
            {"name": f"init{i}", **({"image": image} if image is not None else {})}
            for i, image in enumerate(init_containers)
        ]
    if pull_secrets is not None:
        spec["imagePullSecrets"] = [{"name": name} for name in pull_secrets]
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": "test-pod", "namespace": "test-ns"},
        "spec": spec,
    }


def make_context(
    pod: dict | None = None,
    raw_object: bytes | None = None,
    namespace: str = "test-ns",
    resource=POD_GVR,
) -> AdmissionContext:
    """Build an AdmissionContext for a pod document or raw bytes."""
    if raw_object is None:
        raw_object = json.dumps(pod if pod is not None else make_pod()).encode()
    return AdmissionContext(
        uid="0df28fbd-5f5f-11e8-bc74-36e6bb280816",
        namespace=namespace,
        resource=resource,
        raw_object=raw_object,
    )


@pytest.fixture
def pod_factory():
    return make_pod


@pytest.fixture
def context_factory():
    return make_context


@pytest.fixture
def stale_v1():
    return StaleReadCoreV1()
