"""
Unit tests for GuidanceSession and the calibration capture flow.
"""

from unittest import mock

import pytest

from rcguidance.core.client import GuidanceClient, GuidanceClientError, SessionParameters
from rcguidance.core.results import ResultsFormatError, TimingEntry
from rcguidance.core.session import (
    GuidanceSession,
    SessionError,
    SessionState,
    send_calibration_frame,
)


@pytest.fixture
def client():
    client = mock.Mock(spec=GuidanceClient)
    client.get_times.return_value = [TimingEntry("car1", "3.5s"), TimingEntry("car2", "2.1s")]
    return client


@pytest.fixture
def session(test_config, fake_camera, fake_scheduler, client):
    params = SessionParameters("10.0.0.5", "2", "4", "10")
    session = GuidanceSession(params, test_config, fake_camera, fake_scheduler, client=client)
    yield session
    session.close()


class TestInitialize:
    def test_initialize_sends_calibration(self, session, client):
        session.initialize()

        assert session.state == SessionState.INITIALIZED
        params, calibration = client.initialize.call_args.args
        assert params.number_of_cars == "2"
        assert calibration.camera_matrix.shape == (3, 3)

    def test_calibration_failure(self, session, client, test_config, tmp_path):
        test_config["calibration"]["path"] = str(tmp_path / "missing.json")

        with pytest.raises(SessionError, match="Failed to load calibration"):
            session.initialize()
        client.initialize.assert_not_called()
        assert session.state == SessionState.UNINITIALIZED

    def test_server_rejects(self, session, client):
        client.initialize.side_effect = GuidanceClientError("bad", status_code=400)

        with pytest.raises(SessionError, match=r"Init failed \(400\)"):
            session.initialize()

    def test_network_error(self, session, client):
        client.initialize.side_effect = GuidanceClientError("refused")

        with pytest.raises(SessionError, match="Network error"):
            session.initialize()


class TestCapture:
    def test_start_requires_initialize(self, session):
        with pytest.raises(SessionError):
            session.start_capture()

    def test_start_and_end(self, session, fake_scheduler):
        session.initialize()

        assert session.start_capture() is True
        assert session.state == SessionState.ACTIVE
        assert session.is_sending

        results = session.end()

        assert fake_scheduler.events[0].cancelled
        assert not session.is_sending
        assert session.state == SessionState.ENDED
        assert [(r.rank, r.identifier) for r in results] == [(1, "car2"), (2, "car1")]

    def test_loop_uploads_through_client(self, session, client):
        assert session.loop.upload == client.upload_image

    def test_start_with_closed_camera(self, session, fake_camera):
        session.initialize()
        fake_camera.release()

        assert session.start_capture() is False
        assert session.state == SessionState.INITIALIZED

    def test_fetch_failure_allows_retry(self, session, client):
        session.initialize()
        session.start_capture()
        client.get_times.side_effect = GuidanceClientError("timeout")

        with pytest.raises(SessionError, match="Network error"):
            session.end()
        assert not session.is_sending
        assert session.state == SessionState.ACTIVE

        client.get_times.side_effect = None
        assert len(session.end()) == 2

    def test_malformed_results(self, session, client):
        session.initialize()
        client.get_times.side_effect = ResultsFormatError("not json")

        with pytest.raises(SessionError, match="Unexpected response"):
            session.end()

    def test_close_is_idempotent(self, session, client):
        session.close()
        session.close()
        assert client.close.call_count == 2


class TestCalibrationFrame:
    def test_sends_calib_jpg(self, fake_camera, client):
        assert send_calibration_frame(client, fake_camera) == "Image sent"
        image, filename = client.upload_image.call_args.args
        assert filename == "calib.jpg"
        assert image[:2] == b"\xff\xd8"

    def test_server_error(self, fake_camera, client):
        client.upload_image.side_effect = GuidanceClientError("bad", status_code=503)
        assert send_calibration_frame(client, fake_camera) == "Err 503"

    def test_transport_error(self, fake_camera, client):
        client.upload_image.side_effect = GuidanceClientError("refused")
        assert send_calibration_frame(client, fake_camera).startswith("Error: ")

    def test_capture_failure(self, make_camera, client):
        message = send_calibration_frame(client, make_camera(fail_reads=True))
        assert message.startswith("Error: ")
        client.upload_image.assert_not_called()

    def test_camera_error_becomes_message(self, fake_camera, client):
        fake_camera.read = mock.Mock(
            side_effect=AttributeError("'NoneType' object has no attribute 'read'")
        )

        message = send_calibration_frame(client, fake_camera)

        assert message.startswith("Error: ")
        client.upload_image.assert_not_called()
