"""
Constants used throughout the image mirror webhook.

This module defines:
- Pod resource identification
- JSON-patch paths for pod specs
- Pull secret naming, labels and payload keys
- Default configuration values
"""

# Resource the webhook mutates (core API group)
POD_GROUP = ""
POD_VERSION = "v1"
POD_RESOURCE = "pods"
POD_KIND = "Pod"

# Admission operations
OPERATION_CREATE = "CREATE"

# JSON-patch operations
PATCH_OP_ADD = "add"
PATCH_OP_REPLACE = "replace"
PATCH_OP_REMOVE = "remove"
PATCH_TYPE_JSON = "JSONPatch"

# Pod spec fields addressed by patches
CONTAINERS_FIELD = "containers"
INIT_CONTAINERS_FIELD = "initContainers"
IMAGE_PULL_SECRETS_FIELD = "imagePullSecrets"

# Pull secret
SECRET_TYPE_DOCKER_CONFIG_JSON = "kubernetes.io/dockerconfigjson"
DOCKER_CONFIG_JSON_KEY = ".dockerconfigjson"
OWNER_LABEL_KEY = "owner"
MAX_SECRET_NAME_LENGTH = 253
SECRET_NAME_DIGEST_LENGTH = 10

# Default configuration values
DEFAULT_MIRROR_REGISTRY = "demo.goharbor.io/library"
DEFAULT_PULL_USERNAME = "admin"
DEFAULT_IMAGE_TAG = "latest"
DEFAULT_SECRET_NAME_PREFIX = "image.pulling.secret."
DEFAULT_OWNER_LABEL_VALUE = "image-mirror-webhook"

# Timeout constants (in seconds)
# Admission requests are bounded by the API server (10s by default), so
# secret lookups must finish well inside that window.
DEFAULT_KUBE_API_TIMEOUT = 5.0

# Server defaults
DEFAULT_WEBHOOK_PORT = 8443
DEFAULT_METRICS_PORT = 8081
DEFAULT_TLS_DIR = "/run/secrets/tls"
DEFAULT_TLS_CERT_FILE = f"{DEFAULT_TLS_DIR}/tls.crt"
DEFAULT_TLS_KEY_FILE = f"{DEFAULT_TLS_DIR}/tls.key"
LIVENESS_ENDPOINT = "http://0.0.0.0:8080/healthz"
