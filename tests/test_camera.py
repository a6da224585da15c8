"""Tests for capture session operations"""

from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from booth_errors import InvalidSource, OverlayUnavailable
from camera import (
    OpenCVCamera,
    capture,
    capture_and_submit,
    opencv_camera_opener,
    select_overlay,
    start_camera,
    stop_camera,
    switch_camera,
)
from link_encoder import LinkEncoder
from models.asset import UploadItem
from models.session import CaptureSession


class FakeCamera:
    def __init__(self, facing_mode, events, frame=None):
        self.facing_mode = facing_mode
        self.events = events
        self.frame = frame
        self.released = False

    def read_frame(self):
        return self.frame

    def release(self):
        self.released = True
        self.events.append(("release", self.facing_mode))


@pytest.fixture
def events():
    return []


@pytest.fixture
def opener(events, gradient_frame):
    def _open(facing_mode):
        events.append(("open", facing_mode))
        return FakeCamera(facing_mode, events, frame=gradient_frame)
    return _open


class TestSession:

    def test_defaults(self):
        session = CaptureSession()
        assert session.facing_mode == "user"
        assert session.mirror is True
        assert session.is_streaming is False

    def test_rear_camera_not_mirrored(self):
        assert CaptureSession(facing_mode="environment").mirror is False

    def test_invalid_facing_mode(self):
        with pytest.raises(ValueError):
            CaptureSession(facing_mode="sideways")


class TestCameraLifecycle:

    def test_start(self, opener, events):
        session = start_camera(CaptureSession(), opener)

        assert session.is_streaming
        assert events == [("open", "user")]

    def test_switch_releases_before_acquiring(self, opener, events):
        """The previous device is released before the next one opens"""
        session = start_camera(CaptureSession(), opener)
        old_stream = session.stream

        session = switch_camera(session, opener)

        assert session.facing_mode == "environment"
        assert old_stream.released
        assert events == [("open", "user"), ("release", "user"), ("open", "environment")]

    def test_restart_same_camera(self, opener, events):
        session = start_camera(CaptureSession(), opener)
        start_camera(session, opener)
        assert events == [("open", "user"), ("release", "user"), ("open", "user")]

    def test_stop(self, opener):
        session = stop_camera(start_camera(CaptureSession(), opener))
        assert session.stream is None


class TestCapture:

    def test_capture_without_stream(self, transparent_overlay):
        session = select_overlay(CaptureSession(), transparent_overlay)
        with pytest.raises(InvalidSource):
            capture(session, 30, 40)

    def test_capture_without_frame(self, events, transparent_overlay):
        session = CaptureSession(stream=FakeCamera("user", events, frame=None), selected_overlay=transparent_overlay)
        with pytest.raises(InvalidSource):
            capture(session, 30, 40)

    def test_capture_without_overlay(self, opener):
        session = start_camera(CaptureSession(), opener)
        with pytest.raises(OverlayUnavailable):
            capture(session, 30, 40)

    def test_capture_mirrors_front_camera(self, opener, transparent_overlay):
        """Front and rear captures of the same frame are mirror images"""
        front = select_overlay(start_camera(CaptureSession(), opener), transparent_overlay)
        rear = select_overlay(start_camera(CaptureSession(facing_mode="environment"), opener), transparent_overlay)

        front_img = Image.open(BytesIO(capture(front, 30, 40)))
        rear_img = Image.open(BytesIO(capture(rear, 30, 40)))

        assert front_img.size == (30, 40)
        assert list(front_img.transpose(Image.Transpose.FLIP_LEFT_RIGHT).getdata()) == list(rear_img.getdata())

    def test_capture_with_store_overlay(self, opener, coordinator, make_png):
        green = make_png(Image.new("RGBA", (30, 40), (0, 255, 0, 255)))
        overlay = coordinator.add_overlays([UploadItem(filename="frame.png", content=green)])[0]
        session = select_overlay(start_camera(CaptureSession(), opener), overlay.name)

        img = Image.open(BytesIO(capture(session, 30, 40, coordinator.read_overlay)))

        assert img.convert("RGBA").getpixel((0, 0)) == (0, 255, 0, 255)


class FakeVideoCapture:
    """Stand-in for cv2.VideoCapture returning one BGR frame"""

    instances = []

    def __init__(self, index, opened=True, frame=None):
        self.index = index
        self.opened = opened
        self.frame = frame
        self.release_calls = 0
        FakeVideoCapture.instances.append(self)

    def isOpened(self):
        return self.opened

    def read(self):
        if self.frame is None:
            return False, None
        return True, self.frame

    def release(self):
        self.release_calls += 1


@pytest.fixture
def video_capture(monkeypatch):
    FakeVideoCapture.instances = []
    # 2x3 frame, pure blue in BGR order
    frame = np.zeros((2, 3, 3), dtype=np.uint8)
    frame[:, :, 0] = 255

    def factory(opened=True, frame=frame):
        monkeypatch.setattr("camera.cv2.VideoCapture", lambda index: FakeVideoCapture(index, opened, frame))
        return FakeVideoCapture.instances
    return factory


class TestOpenCVCamera:

    def test_open_failure(self, video_capture):
        instances = video_capture(opened=False)

        with pytest.raises(InvalidSource):
            OpenCVCamera(3, "environment").open()
        assert instances[0].index == 3
        assert instances[0].release_calls == 1

    def test_frames_converted_to_rgb(self, video_capture):
        video_capture()
        camera = OpenCVCamera(0).open()

        frame = camera.read_frame()

        assert frame.size == (3, 2)
        assert frame.getpixel((0, 0)) == (0, 0, 255)

    def test_no_frame(self, video_capture):
        video_capture(frame=None)
        assert OpenCVCamera(0).open().read_frame() is None

    def test_read_before_open(self):
        assert OpenCVCamera(0).read_frame() is None

    def test_release_is_idempotent(self, video_capture):
        instances = video_capture()
        camera = OpenCVCamera(0).open()

        camera.release()
        camera.release()

        assert not camera.is_open
        assert instances[0].release_calls == 1

    def test_opener_maps_facing_mode(self, video_capture):
        instances = video_capture()
        open_camera = opencv_camera_opener({"user": 4, "environment": 7})

        camera = open_camera("environment")

        assert camera.facing_mode == "environment"
        assert instances[0].index == 7

    def test_opener_unknown_facing_mode(self, video_capture):
        video_capture()
        with pytest.raises(InvalidSource):
            opencv_camera_opener({"user": 0})("environment")


class TestCaptureAndSubmit:
    """Camera to compositor to output store to link encoder"""

    @pytest.fixture
    def frames(self, coordinator, make_png):
        older = make_png(Image.new("RGBA", (30, 40), (255, 0, 0, 255)))
        newer = make_png(Image.new("RGBA", (30, 40), (0, 0, 255, 255)))
        return coordinator.add_overlays([
            UploadItem(filename="older.png", content=older),
            UploadItem(filename="newer.png", content=newer),
        ])

    def test_defaults_to_newest_overlay(self, coordinator, opener, events, frames):
        submission = capture_and_submit(coordinator, LinkEncoder("https://booth.example.com"), opener, 30, 40)

        stored = Image.open(BytesIO(coordinator.read_output(submission.output.name)))
        assert stored.size == (30, 40)
        assert stored.convert("RGBA").getpixel((0, 0)) == (0, 0, 255, 255)
        assert submission.link.target_address == "https://booth.example.com" + submission.output.address
        assert events == [("open", "user"), ("release", "user")]

    def test_named_overlay_and_rear_camera(self, coordinator, opener, events, frames):
        submission = capture_and_submit(
            coordinator, LinkEncoder(), opener, 30, 40, facing_mode="environment", overlay=frames[0].name
        )

        stored = Image.open(BytesIO(coordinator.read_output(submission.output.name)))
        assert stored.convert("RGBA").getpixel((0, 0)) == (255, 0, 0, 255)
        assert events == [("open", "environment"), ("release", "environment")]

    def test_no_overlays_uploaded(self, coordinator, opener, events):
        with pytest.raises(OverlayUnavailable):
            capture_and_submit(coordinator, LinkEncoder(), opener, 30, 40)
        assert events == []
        assert coordinator.output_store.list() == []

    def test_camera_released_on_failure(self, coordinator, events, frames):
        """The camera is released and nothing is stored when no frame is ready"""
        def empty_opener(facing_mode):
            events.append(("open", facing_mode))
            return FakeCamera(facing_mode, events, frame=None)

        with pytest.raises(InvalidSource):
            capture_and_submit(coordinator, LinkEncoder(), empty_opener, 30, 40)
        assert events == [("open", "user"), ("release", "user")]
        assert coordinator.output_store.list() == []

    def test_unknown_overlay_name(self, coordinator, opener, frames):
        with pytest.raises(OverlayUnavailable):
            capture_and_submit(coordinator, LinkEncoder(), opener, 30, 40, overlay="frame_missing.png")
