"""
Unit tests for MetricsCollector methods in observability/metrics.py.

Tests the individual methods of MetricsCollector to verify they call the
correct Prometheus metric objects with the correct label values.
"""

from unittest.mock import MagicMock, patch

import pytest

from image_mirror_webhook.observability.metrics import MetricsCollector


@pytest.fixture
def collector():
    """Create a MetricsCollector with the registry init patched out."""
    with patch(
        "image_mirror_webhook.observability.metrics.get_metrics_registry",
        return_value=MagicMock(),
    ):
        return MetricsCollector()


class TestMetricsCollector:
    @patch("image_mirror_webhook.observability.metrics.ADMISSION_REQUESTS_TOTAL")
    def test_record_admission(self, mock_requests, collector):
        collector.record_admission("CREATE", "patched")
        mock_requests.labels.assert_called_with(operation="CREATE", result="patched")
        mock_requests.labels().inc.assert_called_once()

    @patch("image_mirror_webhook.observability.metrics.IMAGE_REWRITES_TOTAL")
    def test_record_image_rewrite(self, mock_rewrites, collector):
        collector.record_image_rewrite("initContainers")
        mock_rewrites.labels.assert_called_with(container_type="initContainers")
        mock_rewrites.labels().inc.assert_called_once()

    @patch("image_mirror_webhook.observability.metrics.SECRET_PROVISIONING_TOTAL")
    def test_record_secret_provisioning(self, mock_outcomes, collector):
        collector.record_secret_provisioning("converged")
        mock_outcomes.labels.assert_called_with(outcome="converged")
        mock_outcomes.labels().inc.assert_called_once()

    @patch("image_mirror_webhook.observability.metrics.MUTATION_DURATION")
    def test_track_mutation_observes_on_error(self, mock_duration, collector):
        """Duration is recorded even when the mutation raises."""
        with pytest.raises(RuntimeError):
            with collector.track_mutation():
                raise RuntimeError("boom")
        mock_duration.observe.assert_called_once()
        assert mock_duration.observe.call_args.args[0] >= 0

    @patch("image_mirror_webhook.observability.metrics.MUTATION_DURATION")
    def test_track_mutation(self, mock_duration, collector):
        with collector.track_mutation():
            pass
        mock_duration.observe.assert_called_once()
