from .session import SessionStatistics, SessionStatsRecorder, format_duration

__all__ = ["SessionStatistics", "SessionStatsRecorder", "format_duration"]
