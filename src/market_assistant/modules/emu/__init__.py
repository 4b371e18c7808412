from .adb import Adb, AdbError, AdbTimeout
from .adapter import DeviceAdapter, DeviceConfig
from .async_adapter import AsyncDeviceAdapter

__all__ = ["Adb", "AdbError", "AdbTimeout", "DeviceAdapter", "DeviceConfig", "AsyncDeviceAdapter"]
