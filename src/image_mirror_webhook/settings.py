"""Centralized webhook settings using pydantic-settings.

``Settings`` is loaded from environment variables once at startup. The
mutation core never reads it directly: it receives a frozen ``MirrorConfig``
built from it by :meth:`Settings.mirror_config`.
"""

from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from image_mirror_webhook.constants import (
    DEFAULT_IMAGE_TAG,
    DEFAULT_KUBE_API_TIMEOUT,
    DEFAULT_METRICS_PORT,
    DEFAULT_MIRROR_REGISTRY,
    DEFAULT_OWNER_LABEL_VALUE,
    DEFAULT_PULL_USERNAME,
    DEFAULT_SECRET_NAME_PREFIX,
    DEFAULT_TLS_CERT_FILE,
    DEFAULT_TLS_KEY_FILE,
    DEFAULT_WEBHOOK_PORT,
)
from image_mirror_webhook.errors import ConfigurationError
from image_mirror_webhook.models.credential import (
    SECRET_NAME_PATTERN,
    PullCredential,
    format_secret_name,
)
from image_mirror_webhook.models.image import contains_domain


class MirrorConfig(BaseModel):
    """Immutable mirror and credential configuration for the mutation core."""

    model_config = {"frozen": True}

    registry: str = Field(..., description="Mirror registry, e.g. host/project")
    registry_auth_url: str = Field(
        "", description="Auth endpoint recorded in the pull secret"
    )
    username: str = Field(..., min_length=1, description="Pull username")
    password: SecretStr = Field(SecretStr(""), description="Pull password or token")
    email_domain: str = Field("", description="Domain of the derived email")
    default_tag: str = Field(DEFAULT_IMAGE_TAG, min_length=1)
    secret_name_prefix: str = Field(DEFAULT_SECRET_NAME_PREFIX, min_length=1)
    owner: str = Field(DEFAULT_OWNER_LABEL_VALUE, min_length=1)

    @field_validator("registry")
    @classmethod
    def registry_must_be_qualified(cls, value: str) -> str:
        # A mirror the domain check does not recognise would be prefixed
        # again on every normalization.
        value = value.rstrip("/")
        if not contains_domain(f"{value}/"):
            raise ValueError(
                f"mirror registry '{value}' must start with a dotted host name"
            )
        return value

    @field_validator("default_tag")
    @classmethod
    def tag_must_be_bare(cls, value: str) -> str:
        if ":" in value or "/" in value or "@" in value:
            raise ValueError(f"default tag '{value}' must not contain ':', '/' or '@'")
        return value

    @field_validator("secret_name_prefix")
    @classmethod
    def prefix_must_form_valid_names(cls, value: str) -> str:
        if not SECRET_NAME_PATTERN.match(format_secret_name("a", value)):
            raise ValueError(
                f"secret name prefix '{value}' must be lowercase alphanumerics, "
                "'-' or '.', starting with an alphanumeric"
            )
        return value

    @property
    def registry_host(self) -> str:
        """Registry host including any port."""
        return self.registry.partition("/")[0]

    @property
    def auth_url(self) -> str:
        return self.registry_auth_url or f"https://{self.registry_host}/v2/"

    @property
    def email(self) -> str:
        domain = self.email_domain or self.registry_host.partition(":")[0]
        return f"{self.username}@{domain}"

    @property
    def secret_name(self) -> str:
        return format_secret_name(self.username, self.secret_name_prefix)

    def pull_credential(self) -> PullCredential:
        """Return the credential stored in every namespace pull secret."""
        return PullCredential(
            registry_url=self.auth_url,
            username=self.username,
            password=self.password,
            email=self.email,
        )


class Settings(BaseSettings):
    """Webhook configuration loaded from environment variables.

    All settings have sensible defaults except the pull password. Override
    via environment variables as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Mirror registry
    mirror_registry: str = Field(
        default=DEFAULT_MIRROR_REGISTRY,
        description="Registry (and project) that unqualified images are routed through",
        validation_alias="MIRROR_REGISTRY",
    )
    registry_auth_url: str = Field(
        default="",
        description="Registry auth URL for the pull secret (default https://<host>/v2/)",
        validation_alias="REGISTRY_AUTH_URL",
    )
    default_image_tag: str = Field(
        default=DEFAULT_IMAGE_TAG,
        description="Tag appended to images without tag or digest",
        validation_alias="DEFAULT_IMAGE_TAG",
    )

    # Pull credential
    pull_username: str = Field(
        default=DEFAULT_PULL_USERNAME,
        description="Username stored in the namespace pull secret",
        validation_alias="PULL_USERNAME",
    )
    pull_password: SecretStr = Field(
        default=SecretStr(""),
        description="Password or token stored in the namespace pull secret",
        validation_alias="PULL_PASSWORD",
    )
    pull_email_domain: str = Field(
        default="",
        description="Domain of the email recorded in the pull secret (default: registry host)",
        validation_alias="PULL_EMAIL_DOMAIN",
    )
    secret_name_prefix: str = Field(
        default=DEFAULT_SECRET_NAME_PREFIX,
        description="Prefix of the pull secret name",
        validation_alias="SECRET_NAME_PREFIX",
    )
    owner_label_value: str = Field(
        default=DEFAULT_OWNER_LABEL_VALUE,
        description="Value of the 'owner' label on created pull secrets",
        validation_alias="OWNER_LABEL_VALUE",
    )

    # Kubernetes API
    kube_api_timeout_seconds: float = Field(
        default=DEFAULT_KUBE_API_TIMEOUT,
        gt=0,
        description="Budget for ensuring the pull secret, read and create together",
        validation_alias="KUBE_API_TIMEOUT_SECONDS",
    )

    # Admission server
    webhook_host: str = Field(
        default="0.0.0.0",
        validation_alias="WEBHOOK_HOST",
        description="Host address to bind the admission server",
    )
    webhook_port: int = Field(
        default=DEFAULT_WEBHOOK_PORT,
        validation_alias="WEBHOOK_PORT",
        description="Port for the admission server",
    )
    tls_cert_file: str = Field(
        default=DEFAULT_TLS_CERT_FILE,
        validation_alias="TLS_CERT_FILE",
        description="TLS certificate for the admission server (empty = plain HTTP)",
    )
    tls_key_file: str = Field(
        default=DEFAULT_TLS_KEY_FILE,
        validation_alias="TLS_KEY_FILE",
        description="TLS private key for the admission server",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )
    log_health_probes: bool = Field(
        default=False,
        validation_alias="LOG_HEALTH_PROBES",
        description="Log health probe and metrics scrape requests",
    )

    # Metrics and observability
    metrics_port: int = Field(
        default=DEFAULT_METRICS_PORT,
        validation_alias="METRICS_PORT",
        description="Port for Prometheus metrics endpoint",
    )
    metrics_host: str = Field(
        default="0.0.0.0",
        validation_alias="METRICS_HOST",
        description="Host address to bind metrics server",
    )

    def mirror_config(self) -> MirrorConfig:
        """Build the frozen mirror configuration.

        Raises:
            ConfigurationError: If the mirror settings are invalid
        """
        try:
            return MirrorConfig(
                registry=self.mirror_registry,
                registry_auth_url=self.registry_auth_url,
                username=self.pull_username,
                password=self.pull_password,
                email_domain=self.pull_email_domain,
                default_tag=self.default_image_tag,
                secret_name_prefix=self.secret_name_prefix,
                owner=self.owner_label_value,
            )
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid mirror configuration: {e}",
                user_action=(
                    "Check MIRROR_REGISTRY, PULL_USERNAME, DEFAULT_IMAGE_TAG "
                    "and SECRET_NAME_PREFIX"
                ),
            ) from e


# Global settings instance - initialized once at module import
settings = Settings()
