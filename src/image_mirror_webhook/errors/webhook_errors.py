"""
Webhook error hierarchy with categorization.

Errors raised by the mutation core fall into two policies:
- DecodeError is fatal to the admission request (fail-closed)
- ProvisioningError is recovered by the orchestrator (fail-open); it is
  never retried, the next admission in the namespace simply tries again
"""

import kopf


class WebhookError(Exception):
    """
    Base error class for all webhook-related exceptions.

    Provides categorization and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize webhook error.

        Args:
            message: Human-readable error description
            category: Error category (decode, provisioning, configuration)
            user_action: What user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.category = category
        self.user_action = user_action
        self.cause = cause

    def __str__(self) -> str:
        """Enhanced string representation with user guidance."""
        base_msg = super().__str__()
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class DecodeError(WebhookError):
    """The admitted object could not be decoded as a pod."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(
            message=f"could not deserialize pod object: {message}",
            category="decode",
            cause=cause,
        )


class ProvisioningError(WebhookError):
    """The namespace pull secret could not be ensured."""

    def __init__(
        self,
        message: str,
        namespace: str,
        secret_name: str,
        reason: str | None = None,
        cause: Exception | None = None,
    ):
        if reason:
            message = f"{message} (reason: {reason})"
        super().__init__(
            message=message,
            category="provisioning",
            user_action="Check RBAC permissions on secrets and cluster connectivity",
            cause=cause,
        )
        self.namespace = namespace
        self.secret_name = secret_name
        self.reason = reason


class KubernetesAPIError(ProvisioningError):
    """Error status returned by the Kubernetes API."""

    def __init__(
        self,
        message: str,
        namespace: str,
        secret_name: str,
        status: int | None = None,
        reason: str | None = None,
        cause: Exception | None = None,
    ):
        if status:
            message = f"HTTP {status}: {message}"
        super().__init__(
            message=message,
            namespace=namespace,
            secret_name=secret_name,
            reason=reason,
            cause=cause,
        )
        self.status = status


class ConfigurationError(WebhookError):
    """Error in webhook configuration."""

    def __init__(self, message: str, user_action: str | None = None):
        super().__init__(
            message=message,
            category="configuration",
            user_action=user_action or "Review and correct configuration",
        )

    def as_kopf_error(self) -> kopf.PermanentError:
        """Convert to a kopf error; invalid configuration never fixes itself."""
        return kopf.PermanentError(str(self))
