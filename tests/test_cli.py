import pytest
import yaml

from market_assistant.__main__ import build_parser, main
from market_assistant.core.constants import OperationMode


def test_write_default_calibration(tmp_path, capsys):
    target = tmp_path / "calibration.yaml"

    assert main(["calibration", "--write-default", str(target)]) == 0

    data = yaml.safe_load(target.read_text(encoding="utf-8"))
    assert data["calibration"]["hard_price_cap"] == 100000
    assert data["randomization"]["min_delay_ms"] == 50
    assert str(target) in capsys.readouterr().out


def test_show_calibration_falls_back_to_defaults(tmp_path, capsys):
    assert main(["calibration", "--calibration", str(tmp_path / "absent.yaml")]) == 0

    assert '"name": "default"' in capsys.readouterr().out


def test_run_arguments(monkeypatch):
    import market_assistant.__main__ as cli

    seen = {}

    async def _fake_run_session(mode, path, max_rows):
        seen.update(mode=mode, path=path, max_rows=max_rows)
        return 0

    monkeypatch.setattr(cli, "run_session", _fake_run_session)

    assert main(["run", "--mode", "edit", "--calibration", "x.yaml", "--max-rows", "3"]) == 0
    assert seen == {"mode": OperationMode.EDIT_UPDATE, "path": "x.yaml", "max_rows": 3}


def test_mode_is_required():
    with pytest.raises(SystemExit) as exc:
        build_parser().parse_args(["run"])

    assert exc.value.code == 2
