from market_assistant.core.constants import OutcomeKind
from market_assistant.modules.stats import SessionStatsRecorder, format_duration


class _Clock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_counters_and_success_rate():
    clock = _Clock()
    rec = SessionStatsRecorder(clock=clock)
    rec.start_session()

    rec.record_success(OutcomeKind.ORDER_CREATED, 505)
    rec.record_success(OutcomeKind.ALREADY_ORDERED)
    rec.record_failure(OutcomeKind.OCR_FAILED)
    rec.record_success("order_updated", 610)
    for _ in range(4):
        rec.record_cycle()
    clock.now += 125

    snap = rec.snapshot()
    assert snap.total_cycles == 4
    assert snap.successful_operations == 3
    assert snap.failed_operations == 1
    assert snap.orders_created == 1
    assert snap.orders_edited == 1
    assert snap.price_updates == 2
    assert snap.last_price == 610
    assert snap.success_rate == 0.75
    assert snap.duration_formatted == "2m 5s"


def test_consecutive_errors_reset_on_success():
    rec = SessionStatsRecorder(clock=_Clock())
    rec.start_session()

    rec.record_failure(OutcomeKind.OCR_FAILED)
    rec.record_failure(OutcomeKind.CAPTURE_FAILED)
    assert rec.consecutive_errors == 2

    rec.record_success(OutcomeKind.ALREADY_BEST)
    assert rec.consecutive_errors == 0


def test_update_state_and_export():
    rec = SessionStatsRecorder(clock=_Clock())
    rec.start_session()
    rec.update_state("scan_text")

    text = rec.end_session().export_text()

    assert "最后状态: scan_text" in text
    assert "成功率: 0.0%" in text


def test_start_session_resets_previous_counts():
    rec = SessionStatsRecorder(clock=_Clock())
    rec.start_session()
    rec.record_success(OutcomeKind.ORDER_CREATED, 100)

    rec.start_session()

    assert rec.snapshot().successful_operations == 0
    assert rec.snapshot().last_price is None


def test_format_duration():
    assert format_duration(12_000) == "12s"
    assert format_duration(200_000) == "3m 20s"
    assert format_duration(3_900_000) == "1h 5m"
