"""
Tests for the detection session: mode switching, camera ownership, uploads
and the detection toggle.
"""

import asyncio
import threading
from unittest.mock import patch

import pytest

from detection.model import ModelHolder
from models.config import Config
from models.detection import Detection
from observation.image_source import ImageSource
from pipeline.loop import LoopState
from rendering.overlay import OverlayRenderer
from rendering.surface import OverlaySurface
from runtime.errors import DecodeFailure, ModelUnavailable, NoFrameSource, PermissionDenied
from runtime.session import DetectionSession, Mode
from fakes import ManualScheduler, MockCamera, MockDetector


CAT = Detection.from_xywh("cat", 0.92, 10, 10, 50, 60)


def make_session(model=None, camera=None, default_mode="webcam"):
    cameras = []

    def camera_factory():
        cam = camera if camera is not None else MockCamera()
        cameras.append(cam)
        return cam

    config = Config(default_mode=default_mode)
    session = DetectionSession(
        model if model is not None else ModelHolder.from_detector(MockDetector([CAT])),
        OverlayRenderer(OverlaySurface(), config.overlay),
        ManualScheduler(),
        config=config,
        camera_factory=camera_factory,
    )
    return session, cameras


def run(coro):
    return asyncio.run(coro)


class TestModes:
    def test_default_mode_from_config(self):
        session, _ = make_session(default_mode="upload")
        assert session.mode is Mode.UPLOAD

    def test_switching_to_upload_releases_camera(self):
        async def scenario():
            session, cameras = make_session()
            await session.start_camera()
            await session.set_mode(Mode.UPLOAD)
            return session, cameras

        session, cameras = run(scenario())

        assert session.mode is Mode.UPLOAD
        assert session.camera is None
        assert cameras[0].closed

    def test_set_same_mode_is_noop(self):
        async def scenario():
            session, _ = make_session()
            await session.start_camera()
            await session.set_mode(Mode.WEBCAM)
            return session

        session = run(scenario())

        assert session.camera_active


class TestCamera:
    def test_refused_camera_leaves_session_usable(self, png_bytes):
        async def scenario():
            session, _ = make_session(camera=MockCamera(refuse=True))
            with pytest.raises(PermissionDenied):
                await session.start_camera()
            camera_active = session.camera_active

            await session.upload_image(png_bytes, "image/png")
            state = await session.toggle_detection()
            return session, camera_active, state

        session, camera_active, state = run(scenario())

        assert camera_active is False
        assert state is LoopState.DONE
        assert [d.label for d in session.predictions] == ["cat (92.0%)"]

    def test_refused_camera_is_closed(self):
        camera = MockCamera(refuse=True)

        async def scenario():
            session, _ = make_session(camera=camera)
            with pytest.raises(PermissionDenied):
                await session.start_camera()

        run(scenario())

        assert camera.closed

    def test_start_camera_switches_to_webcam_mode(self):
        async def scenario():
            session, _ = make_session(default_mode="upload")
            await session.start_camera()
            return session

        session = run(scenario())

        assert session.mode is Mode.WEBCAM
        assert session.camera_active

    def test_stop_camera_halts_loop_and_releases(self):
        async def scenario():
            session, cameras = make_session()
            await session.start_camera()
            loop_state = await session.toggle_detection()
            await session.loop.wait()
            await session.stop_camera()
            return session, cameras, loop_state

        session, cameras, loop_state = run(scenario())

        assert loop_state is LoopState.RUNNING
        assert session.loop.state is LoopState.STOPPED
        assert session.camera is None
        assert cameras[0].closed
        assert session.predictions == []
        assert session.renderer.markers == ()


class TestUpload:
    def test_upload_releases_camera_and_switches_mode(self, png_bytes):
        async def scenario():
            session, cameras = make_session()
            await session.start_camera()
            await session.toggle_detection()
            camera_loop = session.loop
            source = await session.upload_image(png_bytes, "image/png")
            return session, cameras, camera_loop, source

        session, cameras, camera_loop, source = run(scenario())

        assert session.mode is Mode.UPLOAD
        assert cameras[0].closed
        assert camera_loop.state is LoopState.STOPPED
        assert (source.width, source.height) == (80, 60)
        assert session.latest_frame.size == (80, 60)
        assert session.detection_status() == "none"

    def test_bad_upload_changes_nothing(self):
        async def scenario():
            session, cameras = make_session()
            await session.start_camera()
            with pytest.raises(DecodeFailure):
                await session.upload_image(b"not an image", "image/png")
            return session, cameras

        session, cameras = run(scenario())

        assert session.mode is Mode.WEBCAM
        assert session.camera_active
        assert not cameras[0].closed

    def test_new_upload_clears_previous_markers(self, png_bytes):
        async def scenario():
            session, _ = make_session()
            await session.upload_image(png_bytes, "image/png")
            await session.toggle_detection()
            markers_before = len(session.renderer.markers)
            await session.upload_image(png_bytes, "image/png")
            return session, markers_before

        session, markers_before = run(scenario())

        assert markers_before == 1
        assert session.renderer.markers == ()
        assert session.predictions == []


class TestToggleDetection:
    def test_upload_without_image(self):
        async def scenario():
            session, _ = make_session(default_mode="upload")
            await session.toggle_detection()

        with pytest.raises(NoFrameSource):
            run(scenario())

    def test_webcam_without_camera(self):
        async def scenario():
            session, _ = make_session()
            await session.toggle_detection()

        with pytest.raises(NoFrameSource):
            run(scenario())

    def test_model_not_loaded(self, png_bytes):
        async def scenario():
            session, _ = make_session(model=ModelHolder(MockDetector))
            await session.upload_image(png_bytes, "image/png")
            await session.toggle_detection()

        with pytest.raises(ModelUnavailable):
            run(scenario())

    def test_model_not_loaded_webcam(self):
        async def scenario():
            session, _ = make_session(model=ModelHolder(MockDetector))
            await session.start_camera()
            try:
                await session.toggle_detection()
            finally:
                assert session.loop is None

        with pytest.raises(ModelUnavailable):
            run(scenario())

    def test_upload_one_shot_marks_done(self, png_bytes):
        async def scenario():
            session, _ = make_session()
            await session.upload_image(png_bytes, "image/png")
            state = await session.toggle_detection()
            return session, state

        session, state = run(scenario())

        assert state is LoopState.DONE
        assert session.detection_status() == "done"
        assert session.status()["passes_completed"] == 1
        assert session.snapshot().shape == (60, 80, 3)

    def test_webcam_toggle_on_then_off(self):
        async def scenario():
            session, _ = make_session()
            await session.start_camera()
            first = await session.toggle_detection()
            await session.loop.wait()
            running_status = session.detection_status()
            second = await session.toggle_detection()
            return session, first, running_status, second

        session, first, running_status, second = run(scenario())

        assert first is LoopState.RUNNING
        assert running_status == "running"
        assert second is LoopState.STOPPED
        assert session.detection_status() == "stopped"
        assert session.predictions == []


class TestStatusAndTeardown:
    def test_initial_status(self):
        session, _ = make_session()

        status = session.status()

        assert status["model_loaded"] is True
        assert status["mode"] == "webcam"
        assert status["camera_active"] is False
        assert status["loop_state"] == "idle"
        assert status["prediction_count"] == 0
        assert status["last_frame_age"] is None

    def test_current_frame_reads_camera_when_idle(self):
        async def scenario():
            session, _ = make_session()
            await session.start_camera()
            return await session.current_frame()

        frame_data = run(scenario())

        assert frame_data.size == (640, 480)

    def test_no_snapshot_without_frame(self):
        session, _ = make_session()
        assert session.snapshot() is None

    def test_teardown_releases_camera(self):
        async def scenario():
            session, cameras = make_session()
            await session.start_camera()
            await session.toggle_detection()
            await session.teardown()
            return session, cameras

        session, cameras = run(scenario())

        assert session.camera is None
        assert cameras[0].closed
        assert session.loop.state is LoopState.STOPPED


class TestPassFailure:
    def test_failed_one_shot_clears_predictions(self, png_bytes):
        detector = MockDetector([CAT, Detection.from_xywh("dog", 0.5, 20, 20, 30, 30)])

        async def scenario():
            session, _ = make_session(model=ModelHolder.from_detector(detector))
            await session.upload_image(png_bytes, "image/png")
            await session.toggle_detection()
            before = len(session.predictions)

            detector.error = RuntimeError("model crashed")
            state = await session.toggle_detection()
            return session, before, state

        session, before, state = run(scenario())

        assert before == 2
        assert state is LoopState.STOPPED
        assert session.predictions == []
        assert session.renderer.markers == ()
        assert session.status()["prediction_count"] == 0
        assert session.status()["last_error"] == "model crashed"

    def test_fail_stopped_webcam_loop_clears_predictions(self):
        detector = MockDetector([CAT])

        async def scenario():
            session, _ = make_session(model=ModelHolder.from_detector(detector))
            await session.start_camera()
            await session.toggle_detection()
            await session.loop.wait()
            before = len(session.predictions)

            detector.error = RuntimeError("model crashed")
            session.controller.scheduler.tick()
            await session.loop.wait()
            return session, before

        session, before = run(scenario())

        assert before == 1
        assert session.loop.state is LoopState.STOPPED
        assert session.detection_status() == "stopped"
        assert session.predictions == []
        assert session.renderer.markers == ()


def test_upload_decodes_off_the_event_loop(png_bytes):
    decode = ImageSource.from_bytes
    threads = []

    def recording_decode(data, content_type=None):
        threads.append(threading.get_ident())
        return decode(data, content_type)

    async def scenario():
        session, _ = make_session()
        with patch.object(ImageSource, "from_bytes", side_effect=recording_decode):
            await session.upload_image(png_bytes, "image/png")
        return session, threading.get_ident()

    session, loop_thread = run(scenario())

    assert session.latest_frame.size == (80, 60)
    assert len(threads) == 1
    assert threads[0] != loop_thread
