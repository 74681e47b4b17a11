"""
Unit tests for CaptureUploadLoop.
"""

import threading

import pytest

from rcguidance.core.upload_loop import CaptureUploadLoop, IntervalScheduler


class RecordingUploader:
    """Upload callable that records calls and can be told to fail."""

    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    def __call__(self, image, filename, extra_fields):
        self.calls.append((image, filename, extra_fields))
        if self.fail:
            raise ConnectionError("server unreachable")
        return 200


def make_loop(camera, scheduler, executor_factory, uploader=None, **kwargs):
    return CaptureUploadLoop(
        camera=camera,
        upload=uploader or RecordingUploader(),
        scheduler=scheduler,
        executor_factory=executor_factory,
        **kwargs,
    )


class TestLifecycle:
    """Tests for start/stop semantics."""

    def test_start_schedules_tick(self, fake_camera, fake_scheduler, manual_executor_factory):
        loop = make_loop(fake_camera, fake_scheduler, manual_executor_factory, interval_ms=10)

        assert loop.start() is True
        assert loop.is_running
        assert len(fake_scheduler.events) == 1
        assert fake_scheduler.events[0].interval == pytest.approx(0.01)

    def test_start_without_camera_is_noop(self, make_camera, fake_scheduler, manual_executor_factory):
        loop = make_loop(make_camera(is_open=False), fake_scheduler, manual_executor_factory)

        assert loop.start() is False
        assert not loop.is_running
        assert fake_scheduler.events == []

    def test_start_twice_is_noop(self, fake_camera, fake_scheduler, manual_executor_factory):
        loop = make_loop(fake_camera, fake_scheduler, manual_executor_factory)
        loop.start()

        assert loop.start() is False
        assert len(fake_scheduler.events) == 1

    def test_stop_before_start_is_noop(self, fake_camera, fake_scheduler, manual_executor_factory):
        loop = make_loop(fake_camera, fake_scheduler, manual_executor_factory)
        loop.stop()
        assert not loop.is_running

    def test_stop_is_idempotent(self, fake_camera, fake_scheduler, manual_executor_factory):
        loop = make_loop(fake_camera, fake_scheduler, manual_executor_factory)
        loop.start()
        loop.stop()
        loop.stop()

        assert fake_scheduler.events[0].cancelled
        assert not loop.is_running
        assert manual_executor_factory.created[0].shutdown_called

    def test_restart_after_stop(self, fake_camera, fake_scheduler, manual_executor_factory):
        loop = make_loop(fake_camera, fake_scheduler, manual_executor_factory)
        loop.start()
        loop.stop()

        assert loop.start() is True
        assert len(fake_scheduler.events) == 2

    def test_invalid_in_flight_limit(self, fake_camera, fake_scheduler):
        with pytest.raises(ValueError):
            CaptureUploadLoop(fake_camera, RecordingUploader(), fake_scheduler, max_in_flight=0)


class TestTicks:
    """Tests for capture and upload on each tick."""

    def test_tick_uploads_jpeg(self, fake_camera, fake_scheduler, manual_executor_factory):
        uploader = RecordingUploader()
        loop = make_loop(fake_camera, fake_scheduler, manual_executor_factory, uploader)
        loop.start()

        loop.tick(0.01)
        manual_executor_factory.created[0].run_pending()

        assert len(uploader.calls) == 1
        image, filename, extra = uploader.calls[0]
        assert image[:2] == b"\xff\xd8"  # JPEG SOI marker
        assert filename == "frame.jpg"
        assert extra is None
        assert loop.stats.uploads_succeeded == 1
        assert loop.in_flight == 0

    def test_tick_does_not_wait_for_upload(self, fake_camera, fake_scheduler, manual_executor_factory):
        loop = make_loop(
            fake_camera, fake_scheduler, manual_executor_factory, max_in_flight=3
        )
        loop.start()

        loop.tick()
        loop.tick()
        loop.tick()

        assert loop.in_flight == 3
        assert loop.stats.captured == 3

    def test_capture_failure_skips_tick(self, make_camera, fake_scheduler, manual_executor_factory):
        camera = make_camera(fail_reads=True)
        uploader = RecordingUploader()
        loop = make_loop(camera, fake_scheduler, manual_executor_factory, uploader)
        loop.start()

        loop.tick()
        loop.tick()

        assert loop.is_running
        assert loop.stats.capture_failures == 2
        assert manual_executor_factory.created[0].pending == []
        assert uploader.calls == []

    def test_upload_failure_keeps_running(self, fake_camera, fake_scheduler, manual_executor_factory):
        loop = make_loop(
            fake_camera, fake_scheduler, manual_executor_factory, RecordingUploader(fail=True)
        )
        loop.start()

        loop.tick()
        manual_executor_factory.created[0].run_pending()
        loop.tick()

        assert loop.is_running
        assert loop.stats.upload_failures == 1
        assert loop.stats.captured == 2

    def test_in_flight_limit_skips_ticks(self, fake_camera, fake_scheduler, manual_executor_factory):
        loop = make_loop(
            fake_camera, fake_scheduler, manual_executor_factory, max_in_flight=1
        )
        loop.start()

        loop.tick()
        reads_after_first = fake_camera.reads
        loop.tick()

        assert loop.stats.skipped_ticks == 1
        assert fake_camera.reads == reads_after_first  # camera not read when full

        manual_executor_factory.created[0].run_pending()
        loop.tick()
        assert loop.stats.captured == 2

    def test_tick_after_stop_does_nothing(self, fake_camera, fake_scheduler, manual_executor_factory):
        loop = make_loop(fake_camera, fake_scheduler, manual_executor_factory)
        loop.start()
        loop.stop()

        loop.tick()
        assert loop.stats.ticks == 0

    def test_stop_leaves_in_flight_uploads(self, fake_camera, fake_scheduler, manual_executor_factory):
        uploader = RecordingUploader()
        loop = make_loop(fake_camera, fake_scheduler, manual_executor_factory, uploader)
        loop.start()
        loop.tick()
        loop.stop()

        manual_executor_factory.created[0].run_pending()
        assert len(uploader.calls) == 1
        assert loop.stats.uploads_succeeded == 1

    def test_restart_keeps_previous_run_stats_separate(
        self, fake_camera, fake_scheduler, manual_executor_factory
    ):
        loop = make_loop(fake_camera, fake_scheduler, manual_executor_factory)
        loop.start()
        loop.tick()
        first_run = loop.stats
        loop.stop()

        loop.start()
        manual_executor_factory.created[0].run_pending()

        assert first_run.uploads_succeeded == 1
        assert loop.stats.uploads_succeeded == 0
        assert loop.stats.captured == 0
        assert loop.in_flight == 0

    def test_sequence_numbers(self, fake_camera, fake_scheduler, manual_executor_factory):
        uploader = RecordingUploader()
        loop = make_loop(
            fake_camera,
            fake_scheduler,
            manual_executor_factory,
            uploader,
            send_sequence=True,
            max_in_flight=4,
        )
        loop.start()
        loop.tick()
        loop.tick()
        manual_executor_factory.created[0].run_pending()

        assert [c[2] for c in uploader.calls] == [{"frame_index": "1"}, {"frame_index": "2"}]

    def test_from_config(self, fake_camera, fake_scheduler, test_config):
        loop = CaptureUploadLoop.from_config(
            test_config["capture"], fake_camera, RecordingUploader(), fake_scheduler
        )
        assert loop.max_in_flight == 2
        assert loop.jpeg_quality == 80
        assert loop.interval == pytest.approx(0.01)


class TestIntervalScheduler:
    """Tests for the thread-based scheduler used in headless mode."""

    def test_fires_and_cancels(self):
        fired = threading.Event()
        event = IntervalScheduler().schedule_interval(lambda dt: fired.set(), 0.001)
        try:
            assert fired.wait(timeout=2.0)
        finally:
            event.cancel()
