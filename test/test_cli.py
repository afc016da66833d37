import os
import pytest
from cli import main, parse_args

SAMPLE_LOG = (
    "cookie,timestamp\n"
    "AtY0laUfhglK3lC7,2018-12-09T14:19:00+00:00\n"
    "SAZuXPGUrfbcn5UA,2018-12-09T10:13:00+00:00\n"
    "5UAVanZf6UtGyKVS,2018-12-09T07:25:00+00:00\n"
    "AtY0laUfhglK3lC7,2018-12-09T06:19:00+00:00\n"
    "SAZuXPGUrfbcn5UA,2018-12-08T22:03:00+00:00\n"
    "4sMM2LxV07bPJzwf,2018-12-08T21:30:00+00:00\n"
    "fbcn5UAVanZf6UtG,2018-12-08T09:30:00+00:00\n"
    "4sMM2LxV07bPJzwf,2018-12-07T23:30:00+00:00\n"
)

# --- 1. Configuration & Scenarios ---

CLI_SCENARIOS = {
    "single_winner": {
        "date": "2018-12-09",
        "exit_code": 0,
        "stdout": "AtY0laUfhglK3lC7\n",
    },
    "tie": {
        "date": "2018-12-08",
        "exit_code": 0,
        "stdout": "4sMM2LxV07bPJzwf\nSAZuXPGUrfbcn5UA\nfbcn5UAVanZf6UtG\n",
    },
    "no_cookies": {
        "date": "2018-12-01",
        "exit_code": 0,
        "stdout": "",
    },
    "invalid_date": {
        "date": "12/09/2018",
        "exit_code": 1,
        "stderr": "Invalid date format",
    },
    "malformed_log": {
        "content": "cookie,timestamp\nAtY0laUfhglK3lC7 2018-12-09T14:19:00+00:00\n",
        "date": "2018-12-09",
        "exit_code": 1,
        "stderr": "line 2",
    },
    "empty_log": {
        "content": "",
        "date": "2018-12-09",
        "exit_code": 1,
        "stderr": "File is empty",
    },
}


@pytest.mark.parametrize("scenario_name", CLI_SCENARIOS.keys())
def test_cli(tmp_path, capsys, scenario_name):
    config = CLI_SCENARIOS[scenario_name]
    log_file = tmp_path / "cookie_log.csv"
    log_file.write_text(config.get("content", SAMPLE_LOG), encoding="utf-8")

    exit_code = main(["-f", str(log_file), "-d", config["date"]])
    captured = capsys.readouterr()

    assert exit_code == config["exit_code"]
    if "stdout" in config:
        assert captured.out == config["stdout"]
    if "stderr" in config:
        assert captured.out == ""
        assert "Error:" in captured.err
        assert config["stderr"] in captured.err


def test_cli_missing_file(tmp_path, capsys):
    exit_code = main(["--file", str(tmp_path / "missing.csv"), "--date", "2018-12-09"])
    assert exit_code == 1
    assert "File not found" in capsys.readouterr().err


def test_cli_requires_file_and_date(capsys):
    with pytest.raises(SystemExit) as exc_info:
        parse_args(["-d", "2018-12-09"])
    assert exc_info.value.code == 2


def test_cli_verbose_flag(tmp_path, capsys):
    log_file = tmp_path / "cookie_log.csv"
    log_file.write_text(SAMPLE_LOG, encoding="utf-8")
    args = parse_args(["-f", str(log_file), "-d", "2018-12-09", "-v"])
    assert args.verbose is True
    assert main(["-f", str(log_file), "-d", "2018-12-09", "-v"]) == 0
    assert capsys.readouterr().out == "AtY0laUfhglK3lC7\n"


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="file permissions are not enforced for root",
)
def test_cli_unreadable_file(tmp_path, capsys):
    log_file = tmp_path / "cookie_log.csv"
    log_file.write_text(SAMPLE_LOG, encoding="utf-8")
    log_file.chmod(0o000)
    try:
        exit_code = main(["-f", str(log_file), "-d", "2018-12-09"])
    finally:
        log_file.chmod(0o644)
    captured = capsys.readouterr()
    assert exit_code == 1
    assert captured.out == ""
    assert "not readable" in captured.err
