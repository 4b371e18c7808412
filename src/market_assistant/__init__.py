"""市场挂单自动化助手"""

__version__ = "1.0.0"
