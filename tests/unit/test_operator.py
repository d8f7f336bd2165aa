"""Unit tests for the kopf lifecycle handlers in operator.py."""

from unittest.mock import AsyncMock, MagicMock, patch

import kopf
import pytest

from image_mirror_webhook import operator
from image_mirror_webhook.errors import ConfigurationError
from image_mirror_webhook.settings import Settings
from image_mirror_webhook.webhooks.admission import AdmissionServer


def make_server():
    server = MagicMock()
    server.start = AsyncMock()
    server.stop = AsyncMock()
    return server


class TestBuildAdmissionServer:
    def test_plain_http_without_certificate(self, tmp_path):
        settings = Settings(
            MIRROR_REGISTRY="mirror.example.com/lib",
            TLS_CERT_FILE=str(tmp_path / "missing.crt"),
        )

        server = operator.build_admission_server(settings)

        assert isinstance(server, AdmissionServer)
        assert server.certfile is None
        assert server.mutator.config.registry == "mirror.example.com/lib"

    def test_tls_when_certificate_exists(self, tmp_path):
        cert = tmp_path / "tls.crt"
        cert.write_text("cert")
        settings = Settings(
            MIRROR_REGISTRY="mirror.example.com/lib",
            TLS_CERT_FILE=str(cert),
            TLS_KEY_FILE=str(tmp_path / "tls.key"),
            KUBE_API_TIMEOUT_SECONDS=3,
        )

        server = operator.build_admission_server(settings)

        assert server.certfile == str(cert)
        assert server.keyfile == str(tmp_path / "tls.key")
        assert server.mutator.provisioner.timeout == 3

    def test_invalid_mirror(self):
        with pytest.raises(ConfigurationError):
            operator.build_admission_server(Settings(MIRROR_REGISTRY="registry"))


class TestStartupHandler:
    @pytest.mark.asyncio
    async def test_starts_servers(self):
        admission_server = make_server()
        metrics_server = make_server()
        kopf_settings = kopf.OperatorSettings()
        memo = kopf.Memo()

        with (
            patch.object(operator, "load_kubernetes_config"),
            patch.object(
                operator, "build_admission_server", return_value=admission_server
            ),
            patch.object(operator, "MetricsServer", return_value=metrics_server),
        ):
            await operator.startup_handler(settings=kopf_settings, memo=memo)

        assert kopf_settings.peering.standalone is True
        assert kopf_settings.posting.enabled is False
        admission_server.start.assert_awaited_once()
        metrics_server.start.assert_awaited_once()
        assert memo.admission_server is admission_server
        assert memo.metrics_server is metrics_server

    @pytest.mark.asyncio
    async def test_configuration_error_is_permanent(self):
        with (
            patch.object(operator, "load_kubernetes_config"),
            patch.object(
                operator,
                "build_admission_server",
                side_effect=ConfigurationError("bad mirror"),
            ),
        ):
            with pytest.raises(kopf.PermanentError):
                await operator.startup_handler(
                    settings=kopf.OperatorSettings(), memo=kopf.Memo()
                )

    @pytest.mark.asyncio
    async def test_metrics_failure_does_not_stop_startup(self):
        admission_server = make_server()
        metrics_server = make_server()
        metrics_server.start.side_effect = OSError("address in use")
        memo = kopf.Memo()

        with (
            patch.object(operator, "load_kubernetes_config"),
            patch.object(
                operator, "build_admission_server", return_value=admission_server
            ),
            patch.object(operator, "MetricsServer", return_value=metrics_server),
        ):
            await operator.startup_handler(settings=kopf.OperatorSettings(), memo=memo)

        assert memo.admission_server is admission_server
        assert getattr(memo, "metrics_server", None) is None


class TestCleanupHandler:
    @pytest.mark.asyncio
    async def test_stops_servers(self):
        memo = kopf.Memo()
        memo.admission_server = make_server()
        memo.metrics_server = make_server()
        memo.metrics_server.stop.side_effect = RuntimeError("already closed")

        await operator.cleanup_handler(memo=memo)

        memo.admission_server.stop.assert_awaited_once()
        memo.metrics_server.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_nothing_started(self):
        await operator.cleanup_handler(memo=kopf.Memo())


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_unhealthy_without_server(self):
        result = await operator.health_check(memo=kopf.Memo())
        assert result == {"status": "unhealthy", "component": "image-mirror-webhook"}

    @pytest.mark.asyncio
    async def test_healthy_when_running(self):
        memo = kopf.Memo()
        memo.admission_server = MagicMock(running=True)

        result = await operator.health_check(memo=memo)

        assert result["status"] == "healthy"
