"""
命令行入口

用法：
  python -m market_assistant run --mode create [--calibration calibration.yaml] [--max-rows 20]
  python -m market_assistant run --mode edit
  python -m market_assistant calibration --write-default calibration.yaml

设备与 OCR 参数从环境变量 / .env 读取（见 core.config.Settings）。
"""
from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import Optional

from .core.config import settings
from .core.constants import OperationMode
from .core.logger import logger
from .core.thread_pool import shutdown_pools
from .modules.calibration import default_profiles, load_calibration, save_calibration

_MODES = {
    "create": OperationMode.CREATE_SWEEP,
    "edit": OperationMode.EDIT_UPDATE,
}


async def run_session(mode: OperationMode, calibration_path: str, max_rows: Optional[int]) -> int:
    """构建设备适配器与 OCR 读取器，运行一次会话直到停止或列表到底。"""
    from .modules.automation import ControlLoop
    from .modules.emu import AsyncDeviceAdapter, DeviceAdapter, DeviceConfig
    from .modules.ocr.async_recognize import PaddleOcrReader
    from .modules.stats import SessionStatsRecorder

    calibration, randomization = load_calibration(calibration_path)
    device = AsyncDeviceAdapter(
        DeviceAdapter(
            DeviceConfig(
                adb_path=settings.adb_path,
                adb_addr=settings.adb_addr,
                gesture_timeout_sec=settings.gesture_timeout_sec,
            )
        )
    )
    stats = SessionStatsRecorder()
    errors = []
    loop_ctrl = ControlLoop(
        gestures=device,
        text_input=device,
        capture=device,
        ocr=PaddleOcrReader(),
        calibration=calibration,
        randomization=randomization,
        stats=stats,
        on_error=errors.append,
        min_confidence=settings.ocr_min_confidence,
    )

    aio_loop = asyncio.get_running_loop()
    try:
        aio_loop.add_signal_handler(signal.SIGINT, loop_ctrl.stop, "Ctrl+C")
    except (NotImplementedError, RuntimeError):
        # Windows 事件循环不支持 add_signal_handler，依赖 KeyboardInterrupt
        pass

    await loop_ctrl.start(mode, max_rows=max_rows)
    try:
        await loop_ctrl.wait()
    finally:
        try:
            aio_loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass

    print(stats.snapshot().export_text())
    if errors:
        logger.error(f"会话因错误终止: {errors[-1]}")
        return 1
    return 0


def _cmd_run(args: argparse.Namespace) -> int:
    path = args.calibration or settings.calibration_path
    try:
        return asyncio.run(run_session(_MODES[args.mode], path, args.max_rows))
    except KeyboardInterrupt:
        logger.warning("已中断")
        return 130
    finally:
        shutdown_pools()


def _cmd_calibration(args: argparse.Namespace) -> int:
    if not args.write_default:
        calibration, randomization = load_calibration(args.calibration or settings.calibration_path)
        print(calibration.model_dump_json(indent=2))
        print(randomization.model_dump_json(indent=2))
        return 0
    calibration, randomization = default_profiles()
    path = save_calibration(args.write_default, calibration, randomization)
    print(f"默认校准档案已写入: {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="market_assistant", description="Market order assistant")
    sub = parser.add_subparsers(dest="command", required=True)

    p_run = sub.add_parser("run", help="运行自动化会话")
    p_run.add_argument("--mode", choices=sorted(_MODES), required=True)
    p_run.add_argument("--calibration", default=None, help="校准档案 YAML，默认取 CALIBRATION_PATH")
    p_run.add_argument("--max-rows", type=int, default=None, help="处理行数上限")
    p_run.set_defaults(func=_cmd_run)

    p_cal = sub.add_parser("calibration", help="查看或生成校准档案")
    p_cal.add_argument("--calibration", default=None, help="要查看的校准档案")
    p_cal.add_argument("--write-default", metavar="PATH", default=None, help="写出默认校准档案")
    p_cal.set_defaults(func=_cmd_calibration)
    return parser


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
