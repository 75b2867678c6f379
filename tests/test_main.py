import datetime as _dt
import json

from constants import HIGHLIGHT_START
from main import EXIT_OK, EXIT_USAGE, main

TODAY = _dt.date(2026, 10, 16)
LUMP_SUM_ARGS = ["-g", "120000", "-w", "2710", "-i", "100000", "-m", "0"]


def _answers(*values):
    it = iter(values)
    return lambda _prompt: next(it)


def test_cli_flags_run_the_search(capsys):
    assert main(LUMP_SUM_ARGS + ["--no-prompt"], today=TODAY) == EXIT_OK
    out = capsys.readouterr().out
    assert "Scenario Table" in out
    assert HIGHLIGHT_START + "$0" in out
    assert "2%" in out
    assert "$126'824" in out
    assert "Time horizon: 12 months (from 2026-10 to 2027-10)" in out


def test_cli_no_color(capsys):
    assert main(LUMP_SUM_ARGS + ["--no-prompt", "--no-color"], today=TODAY) == EXIT_OK
    assert HIGHLIGHT_START not in capsys.readouterr().out


def test_missing_input_without_prompt_fails():
    assert main(["-g", "120000", "--no-prompt"], today=TODAY) == EXIT_USAGE


def test_invalid_flag_without_prompt_fails():
    args = ["-g", "abc", "-w", "2710", "-i", "0", "-m", "0", "--no-prompt"]
    assert main(args, today=TODAY) == EXIT_USAGE


def test_prompts_until_valid(capsys):
    answers = _answers("abc", "120000", "2501", "2710", "100000", "0")
    assert main([], today=TODAY, input_fn=answers) == EXIT_OK
    out = capsys.readouterr().out
    assert "Please introduce a valid value for Goal: " in out
    assert "Please introduce a valid value for Withdraw date (YY MM): 20" in out
    assert "Time horizon: 12 months" in out


def test_unreachable_goal_reports_no_scenario(capsys):
    args = ["-g", "10000", "-w", "2610", "-i", "0", "-m", "500", "--no-prompt"]
    assert main(args, today=TODAY) == EXIT_OK
    out = capsys.readouterr().out
    assert "No scenario found that meets the goal with the provided parameters." in out
    assert "Time horizon: 0 months" in out


def test_config_file_supplies_inputs(tmp_path, capsys):
    path = tmp_path / "plan.json"
    path.write_text(
        json.dumps(
            {
                "scenario": "Lump Sum",
                "goal": 120000,
                "withdraw_date": "2027-10",
                "initial_capital": 100000,
                "max_deposit": 0,
            }
        ),
        encoding="utf-8",
    )
    assert main(["-c", str(path), "--no-prompt"], today=TODAY) == EXIT_OK
    assert "Time horizon: 12 months" in capsys.readouterr().out


def test_flags_override_config_file(tmp_path, capsys):
    path = tmp_path / "plan.json"
    path.write_text(
        json.dumps({"goal": 999999, "withdraw_date": "2027-10", "initial_capital": 100000}),
        encoding="utf-8",
    )
    assert main(["-c", str(path), "-g", "120000", "-m", "0", "--no-prompt"], today=TODAY) == EXIT_OK
    assert "$126'824" in capsys.readouterr().out


def test_missing_config_file_fails(tmp_path):
    assert main(["-c", str(tmp_path / "missing.json"), "--no-prompt"], today=TODAY) == EXIT_USAGE


def test_invalid_config_values_fail(tmp_path):
    path = tmp_path / "plan.json"
    path.write_text(
        json.dumps(
            {"goal": 1000, "withdraw_date": "2027-10", "initial_capital": 0, "max_deposit": 5000}
        ),
        encoding="utf-8",
    )
    assert main(["-c", str(path), "--no-prompt"], today=TODAY) == EXIT_USAGE


def test_negative_max_deposit_with_withdrawal_search(capsys):
    args = [
        "-g", "10000", "-w", "2710", "-i", "20000", "--max-deposit=-5",
        "--search-withdrawals", "--no-prompt",
    ]
    assert main(args, today=TODAY) == EXIT_OK
    out = capsys.readouterr().out
    assert "$-5" in out
    assert "$0" in out


def test_plot_option_writes_chart(tmp_path):
    target = tmp_path / "charts" / "plan.png"
    assert main(LUMP_SUM_ARGS + ["--no-prompt", "--plot", str(target)], today=TODAY) == EXIT_OK
    assert target.exists()


def test_numeric_strings_in_config_file_with_max_deposit_flag(tmp_path, capsys):
    path = tmp_path / "plan.json"
    path.write_text(
        json.dumps(
            {"goal": "120000", "withdraw_date": "2027-10", "initial_capital": "100000"}
        ),
        encoding="utf-8",
    )
    assert main(["-c", str(path), "-m", "0", "--no-prompt"], today=TODAY) == EXIT_OK
    assert "$126'824" in capsys.readouterr().out


def test_non_numeric_config_goal_with_max_deposit_flag_fails(tmp_path):
    path = tmp_path / "plan.json"
    path.write_text(
        json.dumps({"goal": "lots", "withdraw_date": "2027-10", "initial_capital": 0}),
        encoding="utf-8",
    )
    assert main(["-c", str(path), "-m", "0", "--no-prompt"], today=TODAY) == EXIT_USAGE


def test_out_of_bounds_config_max_deposit_is_prompted_again(tmp_path, capsys):
    path = tmp_path / "plan.json"
    path.write_text(
        json.dumps(
            {"goal": 120000, "withdraw_date": "2027-10", "initial_capital": 100000,
             "max_deposit": 500000}
        ),
        encoding="utf-8",
    )
    answers = _answers("999999", "0")
    assert main(["-c", str(path)], today=TODAY, input_fn=answers) == EXIT_OK
    out = capsys.readouterr().out
    assert "Please introduce a valid value for Maximum monthly deposit: " in out
    assert "$126'824" in out
