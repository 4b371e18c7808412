"""
自动化控制异常
"""


class AutomationError(Exception):
    """控制循环异常基类"""


class AlreadyRunning(AutomationError):
    """已有会话在运行时再次 start()"""


class SessionBusy(AutomationError):
    """会话运行中拒绝修改配置"""
