"""
Unit tests for log event enrichment.
"""

import contextvars

from rgw_shared.logging import add_correlation_context, add_service_context, set_pass_id, set_request_id


class TestLogProcessors:
    """Test cases for the structlog processors."""

    def test_service_from_logger_namespace(self):
        """Test that the service is the first segment of the logger name."""
        event = add_service_context(None, "info", {"logger": "rgw_exporter.builder", "event": "x"})

        assert event["service"] == "rgw_exporter"

    def test_correlation_ids_are_added_when_bound(self):
        """Test that bound pass and request ids are attached to events."""
        def run():
            pass_id = set_pass_id()
            request_id = set_request_id("req-1")
            return pass_id, request_id, add_correlation_context(None, "info", {"event": "x"})

        pass_id, request_id, event = contextvars.copy_context().run(run)

        assert len(pass_id) == 12
        assert event["pass_id"] == pass_id
        assert event["request_id"] == request_id == "req-1"
