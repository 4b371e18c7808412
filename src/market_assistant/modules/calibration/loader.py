"""
校准档案加载器

从 YAML 文件读取校准档案与随机化参数并校验。
文件不存在、解析失败或校验失败时记录日志并回退到内置默认值，
保证会话启动不会因配置问题崩溃。

文件格式::

    calibration:
      name: my-phone
      first_row: {x: 0.5, y: 0.3}
      ...
    randomization:
      min_delay_ms: 50
      ...
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from ...core.logger import logger
from .types import CalibrationProfile, RandomizationProfile

_log = logger.bind(module="CalibrationLoader")


class CalibrationError(ValueError):
    """校准档案内容非法"""
    pass


def default_profiles() -> Tuple[CalibrationProfile, RandomizationProfile]:
    """内置默认档案"""
    return CalibrationProfile(), RandomizationProfile()


def parse_calibration(data: Dict[str, Any]) -> Tuple[CalibrationProfile, RandomizationProfile]:
    """校验 dict 形式的档案，非法时抛出 CalibrationError。"""
    if not isinstance(data, dict):
        raise CalibrationError("校准档案顶层必须是 dict")
    try:
        calibration = CalibrationProfile.model_validate(data.get("calibration") or {})
        randomization = RandomizationProfile.model_validate(data.get("randomization") or {})
    except ValidationError as e:
        raise CalibrationError(str(e)) from e
    return calibration, randomization


def load_calibration(
    path: Optional[Union[str, Path]],
) -> Tuple[CalibrationProfile, RandomizationProfile]:
    """加载校准档案，任何失败都回退到默认值。

    Args:
        path: YAML 文件路径，None 表示直接使用默认值

    Returns:
        (CalibrationProfile, RandomizationProfile)
    """
    if path is None:
        return default_profiles()

    file_path = Path(path)
    if not file_path.exists():
        _log.warning(f"校准档案不存在，使用默认值: {file_path}")
        return default_profiles()

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        _log.error(f"校准档案读取失败，使用默认值: {file_path}: {e}")
        return default_profiles()

    if data is None:
        _log.warning(f"校准档案为空，使用默认值: {file_path}")
        return default_profiles()

    try:
        calibration, randomization = parse_calibration(data)
    except CalibrationError as e:
        _log.error(f"校准档案校验失败，使用默认值: {file_path}: {e}")
        return default_profiles()

    _log.info(f"校准档案已加载: {file_path} (name={calibration.name})")
    return calibration, randomization


def save_calibration(
    path: Union[str, Path],
    calibration: CalibrationProfile,
    randomization: RandomizationProfile,
) -> Path:
    """写出校准档案（供外部校准编辑器使用）。"""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "calibration": calibration.model_dump(mode="json"),
        "randomization": randomization.model_dump(mode="json"),
    }
    with open(file_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)
    _log.info(f"校准档案已保存: {file_path}")
    return file_path
