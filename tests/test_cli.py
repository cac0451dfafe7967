"""
Tests for the grub-pbkdf2 command line.

The terminal is replaced by an in-memory source so that no tty is needed.
"""
import io
import re
import sys
import types
import argparse
from contextlib import nullcontext
import pytest

from grub_pbkdf2 import __version__
from grub_pbkdf2.cli import create_argument_parser, main, parse_number
from grub_pbkdf2.credential import terminal
from grub_pbkdf2.credential.terminal import StreamSource


@pytest.fixture
def password_input(monkeypatch):
    """Feed the given bytes as terminal input; returns the prompt stream."""
    prompts = io.StringIO()

    def feed(data: bytes) -> io.StringIO:
        source = StreamSource(io.BytesIO(data), prompts)
        monkeypatch.setattr(
            terminal, "open_input_source", lambda tty_path: nullcontext(source),
        )
        return prompts

    return feed


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "GRUB_PBKDF2_ITERATION_COUNT",
        "GRUB_PBKDF2_BUFLEN",
        "GRUB_PBKDF2_SALTLEN",
        "GRUB_PBKDF2_RANDOM_DEVICE",
        "GRUB_PBKDF2_TTY",
    ):
        monkeypatch.delenv(name, raising=False)


class TestParseNumber:
    """Tests for strtoul-style number parsing."""

    @pytest.mark.parametrize("text, expected", [
        ("10000", 10000),
        ("0x10", 16),
        ("010", 8),
        ("0", 0),
        (" 64 ", 64),
    ])
    def test_valid(self, text, expected):
        assert parse_number(text) == expected

    @pytest.mark.parametrize("text", ["abc", "", "1.5", "09"])
    def test_invalid(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_number(text)


class TestArgumentParser:
    """Tests for option spelling."""

    def test_long_options(self):
        args = create_argument_parser().parse_args(
            ["--iteration-count=5", "--buflen=4", "--saltlen=8"]
        )
        assert (args.iterations, args.buflen, args.saltlen) == (5, 4, 8)

    def test_short_options_and_aliases(self):
        args = create_argument_parser().parse_args(
            ["-c", "0x20", "-l", "4", "--salt", "8", "--iteration_count", "7"]
        )
        assert (args.iterations, args.buflen, args.saltlen) == (7, 4, 8)

    def test_unset_options_are_none(self):
        args = create_argument_parser().parse_args([])
        assert args.iterations is None
        assert args.buflen is None
        assert args.saltlen is None


class TestMain:
    """End-to-end tests of main()."""

    def test_success(self, password_input, capsys):
        """Test a matching password prints one token on stdout."""
        prompts = password_input(b"abc\nabc\n")
        status = main(["-c", "10000", "-l", "4", "-s", "4"])
        captured = capsys.readouterr()
        assert status == 0
        assert re.fullmatch(
            r"grub\.pbkdf2\.sha512\.10000\.[0-9A-F]{8}\.[0-9A-F]{8}\n", captured.out,
        )
        assert prompts.getvalue() == "Enter password: \nReenter password: \n"

    def test_mismatch(self, password_input, capsys):
        """Test a mismatch prints a diagnostic and no token."""
        password_input(b"abc\nabd\n")
        status = main(["-c", "10"])
        captured = capsys.readouterr()
        assert status == 1
        assert captured.out == ""
        assert captured.err.strip() == "grub-pbkdf2: error: Passwords don't match"

    def test_no_input(self, password_input, capsys):
        """Test end of input is reported."""
        password_input(b"")
        assert main(["-c", "10"]) == 1
        assert "Failure to read password" in capsys.readouterr().err

    def test_bad_random_device(self, password_input, capsys, tmp_path):
        """Test an unreadable random device is reported."""
        password_input(b"abc\nabc\n")
        status = main(["-c", "10", "--random-device", str(tmp_path / "none")])
        captured = capsys.readouterr()
        assert status == 1
        assert captured.out == ""
        assert "Couldn't retrieve random data for salt" in captured.err

    def test_unwritable_stdout(self, password_input, capsys, monkeypatch):
        """Test a failing stdout is reported as a one-line diagnostic."""
        class FullDisk:
            def write(self, data):
                raise OSError(28, "No space left on device")

            def flush(self):
                pass

        password_input(b"abc\nabc\n")
        monkeypatch.setattr(sys, "stdout", types.SimpleNamespace(buffer=FullDisk()))
        status = main(["-c", "10", "-l", "4", "-s", "4"])
        err = capsys.readouterr().err
        assert status == 1
        assert err.startswith("grub-pbkdf2: error: Failure to write credential")
        assert err.count("\n") == 1

    def test_environment_defaults(self, password_input, capsys, monkeypatch):
        """Test settings are read from the environment."""
        monkeypatch.setenv("GRUB_PBKDF2_ITERATION_COUNT", "12")
        monkeypatch.setenv("GRUB_PBKDF2_BUFLEN", "2")
        password_input(b"abc\nabc\n")
        assert main(["-s", "3"]) == 0
        out = capsys.readouterr().out
        assert re.fullmatch(r"grub\.pbkdf2\.sha512\.12\.[0-9A-F]{6}\.[0-9A-F]{4}\n", out)

    @pytest.mark.parametrize("argv", [["-c", "0"], ["--buflen=0"], ["-s", "0"]])
    def test_non_positive_is_usage_error(self, argv, capsys):
        """Test zero sizes are rejected before prompting."""
        with pytest.raises(SystemExit) as exc_info:
            main(argv)
        assert exc_info.value.code == 2
        assert "grub-pbkdf2: error:" in capsys.readouterr().err

    def test_version(self, capsys):
        """Test --version prints program, title and version."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert capsys.readouterr().out.strip() == f"grub-pbkdf2 (grub_pbkdf2) {__version__}"

    def test_help(self, capsys):
        """Test --help lists the options."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])
        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "--iteration-count" in out
        assert "--buflen" in out
        assert "--saltlen" in out
