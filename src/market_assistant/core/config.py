"""
核心配置模块
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """系统配置（仅基础设施参数，会话级配置见校准档案）"""

    # ADB / 设备
    adb_path: str = Field(default="adb", env="ADB_PATH")
    adb_addr: str = Field(default="127.0.0.1:5555", env="ADB_ADDR")
    # 手势下发后等待平台确认的超时（秒），超时视为失败返回 False
    gesture_timeout_sec: float = Field(default=3.0, env="GESTURE_TIMEOUT_SEC")

    # 校准档案
    calibration_path: str = Field(default="./calibration.yaml", env="CALIBRATION_PATH")

    # OCR
    paddle_ocr_lang: str = Field(default="en", env="PADDLE_OCR_LANG")
    ocr_model_dir: str = Field(default="./ocr_models", env="OCR_MODEL_DIR")
    ocr_min_confidence: float = Field(default=0.6, env="OCR_MIN_CONFIDENCE")

    # 线程池（<=0 表示自动计算）
    io_thread_pool_size: int = Field(default=0, env="IO_THREAD_POOL_SIZE")
    compute_thread_pool_size: int = Field(default=0, env="COMPUTE_THREAD_POOL_SIZE")

    # 日志
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_path: str = Field(default="./logs", env="LOG_PATH")
    log_retention_days: int = Field(default=3, env="LOG_RETENTION_DAYS")
    log_console_enabled: bool = Field(default=True, env="LOG_CONSOLE_ENABLED")

    class Config:
        env_file = ".env"
        case_sensitive = False


# 全局配置实例
settings = Settings()
