# tests/test_cli.py
"""
Profiles, index parsing, cross-checking and the command-line front end.

Run: pytest -v
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from fibengine import cli, config
from fibengine.expreval import parse_index, parse_int_or_expr, parse_range
from fibengine.fmt import strip_ansi
from fibengine.output_manager import OutputManager
from fibengine.runtime import CFG, current
from fibengine.utility import InvalidInput, UserInputError, validate_output_setting
from fibengine.verify import verify_index, verify_range
from fibengine.workspace import ensure_workspace_seeded, workspace_dir

# ---------- profiles ----------------------------------------------------------


def test_seed_copies_packaged_profiles(isolated_workspace):
    root, seeded, copied = ensure_workspace_seeded()
    assert root == isolated_workspace.resolve()
    assert seeded and copied >= 3
    assert config.has_profile("default")
    # second run copies nothing
    assert ensure_workspace_seeded()[2] == 0


def test_load_default_profile():
    ensure_workspace_seeded()
    s = config.load_settings("default")
    assert s.name == "default"
    assert "_PROFILE_" not in s.as_dict()
    assert s.as_dict()["ENGINE"]["MAX_INDEX"] == 500


def test_profile_descriptions_listed():
    ensure_workspace_seeded()
    names = [n for n, _ in config.list_profiles_with_descriptions()]
    assert names == sorted(names, key=str.lower)
    assert {"default", "big", "full"} <= set(names)


def _write_profile(name: str, body: str) -> None:
    pdir = workspace_dir() / "profiles"
    pdir.mkdir(parents=True, exist_ok=True)
    (pdir / f"{name}.toml").write_text(body, encoding="utf-8")


@pytest.mark.parametrize(
    "body",
    [
        "[ENGINE]\nMAX_INDEX = -1\n",
        "[ENGINE]\nMAX_INDEX = \"many\"\n",
        "[ENGINE]\nNATIVE_BITS = 1\n",
        "[ENGINE]\nSIGNED = 1\n",
        "[ENGINE\nbroken",
    ],
    ids=["negative", "string", "bits", "signed", "syntax"],
)
def test_invalid_profiles_are_user_errors(body):
    _write_profile("bad", body)
    with pytest.raises(UserInputError):
        config.load_settings("bad")


def test_missing_profile():
    with pytest.raises(UserInputError):
        config.load_settings("nope")


def test_current_profile_roundtrip():
    assert config.read_current_profile() is None
    config.write_current_profile("big.toml")
    assert config.read_current_profile() == "big"


# ---------- index parsing -----------------------------------------------------

@pytest.mark.parametrize(
    "text,expected",
    [
        ("42", 42),
        ("1_000", 1000),
        ("1 000", 1000),
        ("0x1F", 31),
        ("2**8", 256),
        ("1e3", 1000),
        ("3*(4+5)", 27),
        ("1 << 4", 16),
        ("-7", -7),
    ],
)
def test_parse_int_or_expr(text, expected):
    assert parse_int_or_expr(text) == expected


@pytest.mark.parametrize("text", ["abc", "3.5", "__import__('os')", "2**-1", "", "1/2"])
def test_parse_rejects(text):
    with pytest.raises(UserInputError):
        parse_index(text)


def test_parse_guards_huge_powers():
    with pytest.raises(UserInputError):
        parse_int_or_expr("9**9**9")


def test_parse_index_rejects_negative():
    with pytest.raises(InvalidInput):
        parse_index("-1")


def test_parse_range():
    assert parse_range("10..20") == (10, 20)
    assert parse_range("2**3:16") == (8, 16)
    assert parse_range("7") == (7, 7)
    with pytest.raises(InvalidInput):
        parse_range("20..10")


# ---------- verification ------------------------------------------------------

def test_verify_index():
    assert verify_index(100) == (True, None)


def test_verify_range_all_ok():
    rows = list(verify_range(0, 120))
    assert [k for k, _, _ in rows] == list(range(121))
    assert all(ok for _, ok, _ in rows)


def test_verify_reports_mismatch(monkeypatch):
    import fibengine.verify as verify_mod

    real = verify_mod.gmpy2.fib
    monkeypatch.setattr(verify_mod, "gmpy2", SimpleNamespace(fib=lambda k: real(k) + (k == 10)))
    ok, detail = verify_mod.verify_index(10)
    assert not ok
    assert "F(10)" in detail


# ---------- output ------------------------------------------------------------

def test_output_setting_validation():
    assert validate_output_setting(None) is None
    assert validate_output_setting("results/") == "results/"
    with pytest.raises(ValueError):
        validate_output_setting("evil.py")
    with pytest.raises(ValueError):
        validate_output_setting("nul.txt")


def test_output_manager_split_mode(isolated_workspace):
    with OutputManager(output_file="results/", quiet=True, index=10) as om:
        om.write("F(10) = 55")
    assert (isolated_workspace / "results" / "F10.txt").read_text(encoding="utf-8") == "F(10) = 55\n"


def test_output_manager_single_mode(isolated_workspace):
    for k in (1, 2):
        with OutputManager(output_file="log/all.txt", quiet=True, index=k) as om:
            om.write(f"k={k}")
    text = (isolated_workspace / "log" / "all.txt").read_text(encoding="utf-8")
    assert text == "k=1\n\nk=2\n\n"


# ---------- CLI ---------------------------------------------------------------

def _run(capsys, *argv):
    code = cli.main(list(argv))
    out, err = capsys.readouterr()
    return code, strip_ansi(out), strip_ansi(err)


def test_cli_exact(capsys):
    code, out, _ = _run(capsys, "100")
    assert code == 0
    assert "F(100) = 354224848179261915075" in out
    assert "21" in out


def test_cli_bounded(capsys):
    code, out, _ = _run(capsys, "--bounded", "50")
    assert code == 0
    assert "F(50) = 12586269025" in out


def test_cli_bounded_reports_wraparound(capsys):
    code, out, _ = _run(capsys, "--bounded", "93")
    assert code == 0
    assert "wrapped" in out


def test_cli_expression_index(capsys):
    code, out, _ = _run(capsys, "--no-details", "2**4")
    assert code == 0
    assert out.strip() == "F(16) = 987"


def test_cli_range(capsys):
    code, out, _ = _run(capsys, "--range", "10..12")
    assert code == 0
    assert "F(10) = 55" in out and "F(12) = 144" in out


def test_cli_capacity_error_exit_code(capsys):
    code, _, err = _run(capsys, "501")
    assert code == 2
    assert "maximum supported index 500" in err


def test_cli_profile_and_index(capsys):
    code, out, _ = _run(capsys, "full", "--no-details", "30")
    assert code == 0
    assert "F(30) = 832,040" in out
    assert config.read_current_profile() == "full"
    assert CFG("ENGINE.MAX_INDEX") == 5000


def test_cli_unknown_profile(capsys):
    code, out, _ = _run(capsys, "nosuch", "5")
    assert code == 2
    assert "Unknown profile" in out


def test_cli_verify(capsys):
    code, out, _ = _run(capsys, "verify", "0..60")
    assert code == 0
    assert "61/61 indices verified" in out


def test_cli_output_file(capsys, isolated_workspace):
    code, _, _ = _run(capsys, "--quiet", "--output", "results/", "20")
    assert code == 0
    assert "6765" in (isolated_workspace / "results" / "F20.txt").read_text(encoding="utf-8")


def test_cli_forbidden_output(capsys):
    code, _, err = _run(capsys, "--output", "x.py", "5")
    assert code == 1
    assert "Forbidden" in err


def test_cli_debug_flag_survives_profile(capsys, monkeypatch):
    monkeypatch.setattr(cli, "_install_loud_error_handlers", lambda debug_on: None)
    code, _, err = _run(capsys, "--debug", "--no-details", "5")
    assert code == 0
    assert current().debug
    assert "[debug]" in err


def test_repl_session(capsys, monkeypatch):
    lines = iter(["10", "b 50", "seek 5 end", "read", "seek -3", "tell", "write", "q"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))
    code = cli.main(["--no-details"])
    out = strip_ansi(capsys.readouterr().out)
    assert code == 0
    assert "F(10) = 55" in out
    assert "F(50) = 12586269025" in out
    assert "Position: 495" in out
    assert "Position: 0" in out
    assert "Invalid input" in out
    assert [h.k for h in cli.get_history()][-3:] == [10, 50, 495]


def test_repl_read_goes_through_the_handle(capsys, monkeypatch):
    from fibengine.device import FibHandle

    calls = []
    real_read = FibHandle.read

    def spy(self):
        calls.append(self.tell())
        return real_read(self)

    monkeypatch.setattr(FibHandle, "read", spy)
    lines = iter(["seek 20", "read", "q"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))
    code = cli.main(["--no-details"])
    out = strip_ansi(capsys.readouterr().out)
    assert code == 0
    assert calls == [20]
    assert "F(20) = 6765" in out
    assert cli.get_history()[-1].k == 20
