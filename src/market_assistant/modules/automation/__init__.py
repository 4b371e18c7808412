from .controller import ControlLoop
from .end_of_list import EndOfListTracker
from .errors import AlreadyRunning, AutomationError, SessionBusy
from .interfaces import GestureDispatcher, OcrReader, ScreenCapture, StatisticsSink, TextInjector
from .state import ControlState

__all__ = [
    "ControlLoop",
    "ControlState",
    "EndOfListTracker",
    "AlreadyRunning",
    "AutomationError",
    "SessionBusy",
    "GestureDispatcher",
    "OcrReader",
    "ScreenCapture",
    "StatisticsSink",
    "TextInjector",
]
