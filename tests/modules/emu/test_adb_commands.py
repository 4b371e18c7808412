import subprocess

import cv2
import numpy as np
import pytest

from market_assistant.modules.emu import adb as adb_module
from market_assistant.modules.emu.adapter import DeviceAdapter, DeviceConfig
from market_assistant.modules.emu.adb import MOTION_PATH_MAX_POINTS, Adb, AdbError, escape_input_text


class _Recorder:
    def __init__(self, returncode=0, stdout=b"", stderr=b""):
        self.calls = []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    def __call__(self, cmd, stdout=None, stderr=None, timeout=None):
        self.calls.append((cmd, timeout))
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


@pytest.fixture()
def recorder(monkeypatch):
    rec = _Recorder()
    monkeypatch.setattr(adb_module.subprocess, "run", rec)
    return rec


def test_tap_with_duration_uses_in_place_swipe(recorder):
    Adb("adb").tap("dev", 10, 20, 80, timeout=3.0)

    cmd, timeout = recorder.calls[0]
    assert cmd == ["adb", "-s", "dev", "shell", "input", "swipe", "10", "20", "10", "20", "80"]
    assert timeout == 3.0


def test_motion_path_chains_touch_events(recorder):
    Adb("adb").motion_path("dev", [(0, 100), (0, 50), (0, 0)], 200)

    script = recorder.calls[0][0][-1]
    assert script.startswith("input motionevent DOWN 0 100")
    assert "input motionevent MOVE 0 50" in script
    assert script.endswith("input motionevent UP 0 0")
    assert script.count("sleep 0.100") == 2


def test_motion_path_downsamples_long_bezier_path(recorder):
    points = [(100, 700 - i * 20) for i in range(21)]

    Adb("adb").motion_path("dev", points, 300, timeout=3.3)

    cmd, timeout = recorder.calls[0]
    script = cmd[-1]
    assert script.count("input motionevent") == MOTION_PATH_MAX_POINTS
    assert script.startswith("input motionevent DOWN 100 700")
    assert script.endswith("input motionevent UP 100 300")
    assert script.count("sleep 0.060") == MOTION_PATH_MAX_POINTS - 1
    assert timeout == 3.3


def test_clear_and_text_commands(recorder):
    adapter = DeviceAdapter(DeviceConfig(adb_path="adb", adb_addr="dev"))

    adapter.clear_field()
    assert adapter.set_field_text("505") is True

    clear_cmd = recorder.calls[0][0]
    assert clear_cmd[:6] == ["adb", "-s", "dev", "shell", "input", "keyevent"]
    assert clear_cmd[6] == "123"
    assert clear_cmd[7:] == ["67"] * 20
    assert recorder.calls[1][0][-1] == "505"


def test_escape_input_text():
    assert escape_input_text("a b&c") == "a%sb\\&c"


def test_screen_size_prefers_override():
    out = b"Physical size: 1080x2400\nOverride size: 720x1600\n"
    rec = _Recorder(stdout=out)
    adb = Adb("adb")
    adb._run = lambda args, timeout=10.0: rec(args, timeout=timeout)

    assert adb.screen_size("dev") == (720, 1600)


def test_gesture_failures_return_false(monkeypatch):
    monkeypatch.setattr(adb_module.subprocess, "run", _Recorder(returncode=1, stderr=b"error: device offline"))
    adapter = DeviceAdapter(DeviceConfig(adb_path="adb", adb_addr="dev"))

    assert adapter.tap(1, 2, 80) is False
    assert adapter.swipe(1, 2, 3, 4, 300) is False
    assert adapter.set_field_text("1") is False


def test_timeout_is_reported_as_failure(monkeypatch):
    def _timeout(cmd, stdout=None, stderr=None, timeout=None):
        raise subprocess.TimeoutExpired(cmd, timeout)

    monkeypatch.setattr(adb_module.subprocess, "run", _timeout)
    adapter = DeviceAdapter(DeviceConfig(adb_path="adb", adb_addr="dev", gesture_timeout_sec=3.0))

    assert adapter.tap(1, 2, 80) is False
    with pytest.raises(AdbError):
        Adb("adb").swipe("dev", 0, 0, 1, 1)


def test_path_swipe_falls_back_to_plain_swipe(monkeypatch):
    calls = []

    def _run(cmd, stdout=None, stderr=None, timeout=None):
        calls.append(cmd)
        code = 1 if "motionevent" in cmd[-1] else 0
        return subprocess.CompletedProcess(cmd, code, b"", b"unknown command")

    monkeypatch.setattr(adb_module.subprocess, "run", _run)
    adapter = DeviceAdapter(DeviceConfig(adb_path="adb", adb_addr="dev"))

    assert adapter.swipe(0, 100, 0, 0, 300, path=[(0, 100), (1, 50), (0, 0)]) is True
    assert adapter.swipe(0, 100, 0, 0, 300, path=[(0, 100), (1, 50), (0, 0)]) is True

    assert calls[1][4:6] == ["input", "swipe"]
    # motionevent 不可用后不再尝试
    assert len(calls) == 3


def test_capture_frame_decodes_png_and_handles_failure(monkeypatch):
    img = np.full((4, 6, 3), 200, dtype=np.uint8)
    ok, buf = cv2.imencode(".png", img)
    assert ok

    adapter = DeviceAdapter(DeviceConfig(adb_path="adb", adb_addr="dev"))
    monkeypatch.setattr(adapter.adb, "screencap", lambda addr: buf.tobytes())
    frame = adapter.capture_frame()
    assert frame.shape == (4, 6, 3)

    def _fail(addr):
        raise AdbError("closed")

    monkeypatch.setattr(adapter.adb, "screencap", _fail)
    assert adapter.capture_frame() is None

    monkeypatch.setattr(adapter.adb, "screencap", lambda addr: b"not a png")
    assert adapter.capture_frame() is None


def test_path_swipe_timeout_does_not_fall_back(monkeypatch):
    calls = []

    def _run(cmd, stdout=None, stderr=None, timeout=None):
        calls.append((cmd, timeout))
        raise subprocess.TimeoutExpired(cmd, timeout)

    monkeypatch.setattr(adb_module.subprocess, "run", _run)
    adapter = DeviceAdapter(DeviceConfig(adb_path="adb", adb_addr="dev", gesture_timeout_sec=3.0))

    assert adapter.swipe(0, 100, 0, 0, 300, path=[(0, 100), (1, 50), (0, 0)]) is False

    # 超时后设备上可能仍有 MOVE / UP 在执行，不再补发直线滑动
    assert len(calls) == 1
    assert "motionevent" in calls[0][0][-1]
    assert calls[0][1] == pytest.approx(3.3)
    assert adapter._motion_supported is True
