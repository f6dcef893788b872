"""Audit trail tests"""
from unittest.mock import Mock, patch

import pytest

from payment_webhooks.models.audit_log import AuditLog, AuditStatus
from payment_webhooks.services.audit import AuditRecorder


@pytest.mark.critical
class TestAuditRecorder:

    def test_records_event_identifiers_and_payload(self, store, db_session, sample_payload):
        AuditRecorder(store).record(sample_payload, AuditStatus.RECEIVED)

        entry = db_session.query(AuditLog).one()
        assert entry.event_id == "evt_8f7d6e5c4b3a2"
        assert entry.event_type == "transaction.completed"
        assert entry.status == "received"
        assert entry.payload == sample_payload
        assert entry.error_message is None

    def test_records_failure_with_error(self, store, db_session, sample_payload):
        AuditRecorder(store).record(sample_payload, AuditStatus.FAILED, "Invalid webhook signature")

        entry = db_session.query(AuditLog).one()
        assert entry.status == "failed"
        assert entry.error_message == "Invalid webhook signature"

    def test_accepts_plain_status_string(self, store, db_session, sample_payload):
        AuditRecorder(store).record(sample_payload, "processed")
        assert db_session.query(AuditLog).one().status == "processed"

    def test_missing_identifiers_become_unknown(self, store, db_session):
        AuditRecorder(store).record({"data": {}}, AuditStatus.RECEIVED)

        entry = db_session.query(AuditLog).one()
        assert entry.event_id == "unknown"
        assert entry.event_type == "unknown"

    def test_non_object_payload_is_wrapped(self, store, db_session):
        AuditRecorder(store).record("not json{", AuditStatus.RECEIVED)

        entry = db_session.query(AuditLog).one()
        assert entry.event_id == "unknown"
        assert entry.payload == {"raw_body": "not json{"}

    def test_long_identifiers_are_truncated(self, store, db_session):
        AuditRecorder(store).record({"event_id": "e" * 300, "event_type": "t"}, AuditStatus.RECEIVED)
        assert len(db_session.query(AuditLog).one().event_id) == 255

    def test_entries_are_append_only(self, store, db_session, sample_payload):
        recorder = AuditRecorder(store)
        recorder.record(sample_payload, AuditStatus.RECEIVED)
        recorder.record(sample_payload, AuditStatus.PROCESSED)

        statuses = [e.status for e in db_session.query(AuditLog).order_by(AuditLog.created_at)]
        assert sorted(statuses) == ["processed", "received"]


@pytest.mark.high
class TestAuditFailureIsolation:

    def test_write_failure_is_swallowed_and_logged(self, sample_payload):
        failing_store = Mock()
        failing_store.insert_audit_log.side_effect = RuntimeError("disk full")

        with patch('payment_webhooks.services.audit.audit_logger') as mock_logger:
            AuditRecorder(failing_store).record(sample_payload, AuditStatus.RECEIVED)

        mock_logger.error.assert_called_once()
        assert "disk full" in mock_logger.error.call_args[0][0]

    def test_write_failure_increments_metric(self, sample_payload):
        failing_store = Mock()
        failing_store.insert_audit_log.side_effect = RuntimeError("boom")

        with patch('payment_webhooks.services.audit.audit_write_failures_counter') as counter:
            AuditRecorder(failing_store).record(sample_payload, AuditStatus.FAILED, "x")

        counter.inc.assert_called_once()

    def test_invalid_status_is_swallowed(self, sample_payload):
        recorder = AuditRecorder(Mock())
        recorder.record(sample_payload, "not-a-status")
        recorder.store.insert_audit_log.assert_not_called()
