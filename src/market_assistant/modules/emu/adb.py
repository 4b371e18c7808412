"""
ADB 适配封装

基于 settings.adb_path，提供控制循环所需的基础操作：
- connect(addr)
- screencap(addr) -> PNG bytes
- screen_size(addr) -> (w, h)
- tap(addr, x, y, dur_ms)
- swipe(addr, x1, y1, x2, y2, dur_ms)
- motion_path(addr, points, dur_ms)  轨迹点抽稀到 MOTION_PATH_MAX_POINTS
- input_text(addr, text) / keyevent(addr, *codes)
"""
from __future__ import annotations

import re
import subprocess
from typing import List, Sequence, Tuple

KEYCODE_MOVE_END = 123
KEYCODE_DEL = 67

_WM_SIZE = re.compile(r"(\d+)x(\d+)")

# 每个 motionevent 都会在设备上启动一次 input 进程，轨迹点需控制在手势超时内
MOTION_PATH_MAX_POINTS = 6


class AdbError(RuntimeError):
    pass


class AdbTimeout(AdbError):
    """命令超时，设备端可能仍在执行"""


def downsample_path(points: Sequence[Tuple[int, int]], limit: int) -> List[Tuple[int, int]]:
    """等间隔抽取至多 limit 个轨迹点，保留首尾。"""
    if len(points) <= limit:
        return list(points)
    last = len(points) - 1
    return [points[round(i * last / (limit - 1))] for i in range(limit)]


def escape_input_text(text: str) -> str:
    """转义 `input text` 参数：空格写作 %s，shell 特殊字符加反斜杠。"""
    out = []
    for ch in text:
        if ch == " ":
            out.append("%s")
        elif ch in "\\'\"`$&|;<>()*?!#~":
            out.append("\\" + ch)
        else:
            out.append(ch)
    return "".join(out)


class Adb:
    def __init__(self, adb_path: str = "adb") -> None:
        self.adb = adb_path

    def _run(self, args: List[str], timeout: float = 10.0) -> subprocess.CompletedProcess:
        try:
            cp = subprocess.run(
                [self.adb, *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise AdbError(f"找不到 ADB 可执行文件: {self.adb}") from e
        except subprocess.TimeoutExpired as e:
            raise AdbTimeout(f"ADB 命令超时: {' '.join(args)}") from e
        return cp

    def _check(self, cp: subprocess.CompletedProcess) -> None:
        if cp.returncode != 0:
            raise AdbError((cp.stderr or b"").decode(errors="ignore"))

    def connect(self, addr: str, timeout: float = 10.0) -> bool:
        cp = self._run(["connect", addr], timeout=timeout)
        out = (cp.stdout or b"").decode(errors="ignore").lower()
        return cp.returncode == 0 and ("connected" in out or "already" in out)

    def screencap(self, addr: str, timeout: float = 15.0) -> bytes:
        try:
            out = subprocess.check_output(
                [self.adb, "-s", addr, "exec-out", "screencap", "-p"],
                stderr=subprocess.STDOUT,
                timeout=timeout,
            )
            return out
        except FileNotFoundError as e:
            raise AdbError(f"找不到 ADB 可执行文件: {self.adb}") from e
        except subprocess.CalledProcessError as e:
            raise AdbError((e.output or b"").decode(errors="ignore")) from e
        except subprocess.TimeoutExpired as e:
            raise AdbTimeout("ADB 截图超时") from e

    def screen_size(self, addr: str, timeout: float = 10.0) -> Tuple[int, int]:
        """解析 `wm size`，存在 Override size 时以其为准。"""
        cp = self._run(["-s", addr, "shell", "wm", "size"], timeout=timeout)
        self._check(cp)
        out = (cp.stdout or b"").decode(errors="ignore")
        sizes = _WM_SIZE.findall(out)
        if not sizes:
            raise AdbError(f"无法解析屏幕尺寸: {out.strip()}")
        w, h = sizes[-1]
        return int(w), int(h)

    def tap(self, addr: str, x: int, y: int, dur_ms: int = 0, timeout: float = 10.0) -> None:
        # 带时长的点击用原地 swipe 实现按压时长
        if dur_ms > 0:
            args = ["-s", addr, "shell", "input", "swipe", str(x), str(y), str(x), str(y), str(dur_ms)]
        else:
            args = ["-s", addr, "shell", "input", "tap", str(x), str(y)]
        self._check(self._run(args, timeout=timeout))

    def swipe(self, addr: str, x1: int, y1: int, x2: int, y2: int, dur_ms: int = 300, timeout: float = 10.0) -> None:
        cp = self._run(
            ["-s", addr, "shell", "input", "swipe", str(x1), str(y1), str(x2), str(y2), str(dur_ms)],
            timeout=timeout,
        )
        self._check(cp)

    def motion_path(
        self,
        addr: str,
        points: Sequence[Tuple[int, int]],
        dur_ms: int = 300,
        timeout: float = 10.0,
        max_points: int = MOTION_PATH_MAX_POINTS,
    ) -> None:
        """按轨迹点发送 DOWN / MOVE / UP 触摸事件（需要 Android 10+ 的 input motionevent）。"""
        if len(points) < 2:
            raise AdbError("轨迹至少需要两个点")
        points = downsample_path(points, max(2, max_points))
        step_sec = max(0.0, dur_ms / 1000.0 / (len(points) - 1))
        cmds = [f"input motionevent DOWN {points[0][0]} {points[0][1]}"]
        for x, y in points[1:-1]:
            cmds.append(f"sleep {step_sec:.3f}")
            cmds.append(f"input motionevent MOVE {x} {y}")
        cmds.append(f"sleep {step_sec:.3f}")
        cmds.append(f"input motionevent UP {points[-1][0]} {points[-1][1]}")
        self._check(self._run(["-s", addr, "shell", "; ".join(cmds)], timeout=timeout))

    def input_text(self, addr: str, text: str, timeout: float = 10.0) -> None:
        cp = self._run(["-s", addr, "shell", "input", "text", escape_input_text(text)], timeout=timeout)
        self._check(cp)

    def keyevent(self, addr: str, *codes: int, timeout: float = 10.0) -> None:
        cp = self._run(["-s", addr, "shell", "input", "keyevent", *[str(c) for c in codes]], timeout=timeout)
        self._check(cp)
