"""Tests for bigiron.utils module."""

from __future__ import annotations

import subprocess
from unittest.mock import patch
from xml.etree.ElementTree import Element, SubElement

import pytest

from bigiron.exceptions import CommandError, ParseError
from bigiron.utils import (
    element_to_str,
    ensure_directory,
    find_binary,
    get_env,
    get_env_bool,
    log,
    parse_size_to_bytes,
    run,
)


class TestLog:
    def test_info_level(self, capsys):
        log("INFO", "test message")
        captured = capsys.readouterr()
        assert "[INFO]" in captured.out
        assert "test message" in captured.out

    def test_debug_suppressed_by_default(self, capsys):
        log("DEBUG", "should not appear")
        assert capsys.readouterr().out == ""

    def test_debug_shown_when_verbose(self, capsys):
        with patch("bigiron.utils._LOG_VERBOSE", True):
            log("DEBUG", "details")
        assert "[DEBUG]" in capsys.readouterr().out


class TestEnv:
    def test_get_env_default(self, monkeypatch):
        monkeypatch.delenv("TEST_VAR", raising=False)
        assert get_env("TEST_VAR", "fallback") == "fallback"

    @pytest.mark.parametrize("value", ["1", "true", "yes", "on", "TRUE"])
    def test_truthy_values(self, monkeypatch, value):
        monkeypatch.setenv("TEST_BOOL", value)
        assert get_env_bool("TEST_BOOL") is True

    @pytest.mark.parametrize("value", ["0", "false", "off", "random"])
    def test_falsy_values(self, monkeypatch, value):
        monkeypatch.setenv("TEST_BOOL", value)
        assert get_env_bool("TEST_BOOL") is False

    def test_default_when_unset(self, monkeypatch):
        monkeypatch.delenv("TEST_BOOL", raising=False)
        assert get_env_bool("TEST_BOOL", True) is True


class TestParseSize:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("100M", 100_000_000),
            ("10m", 10_000_000),
            ("20G", 20_000_000_000),
            ("12g", 12_000_000_000),
            ("12Gi", 12 * 1024**3),
            ("512Mi", 512 * 1024**2),
            ("4k", 4000),
            ("1Ki", 1024),
            ("2T", 2 * 1000**4),
            ("1Ti", 1024**4),
            ("4096", 4096),
        ],
    )
    def test_valid(self, raw, expected):
        assert parse_size_to_bytes(raw) == expected

    @pytest.mark.parametrize("raw", ["12Timmies", "10X", "abc", "", "G", "-1G", "1.5G", "100i", "12 Gi"])
    def test_invalid(self, raw):
        with pytest.raises(ParseError):
            parse_size_to_bytes(raw)

    def test_non_string_rejected(self):
        with pytest.raises(ParseError):
            parse_size_to_bytes(None)


class TestRun:
    def test_success(self):
        completed = subprocess.CompletedProcess(["true"], 0, "", "")
        with patch("bigiron.utils.subprocess.run", return_value=completed) as mock_run:
            assert run(["true"]) is completed
        assert mock_run.call_args.kwargs["check"] is True

    def test_non_zero_exit_raises_command_error(self):
        error = subprocess.CalledProcessError(1, ["qemu-img"], output="", stderr="boom")
        with patch("bigiron.utils.subprocess.run", side_effect=error):
            with pytest.raises(CommandError, match="qemu-img exited with status 1: boom"):
                run(["qemu-img", "create"])

    def test_missing_binary_raises_command_error(self):
        with patch("bigiron.utils.subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(CommandError, match="not found"):
                run(["genisoimage"])


class TestHelpers:
    def test_ensure_directory(self, tmp_path):
        target = tmp_path / "a" / "b"
        ensure_directory(target)
        ensure_directory(target)
        assert target.is_dir()

    def test_find_binary(self):
        with patch("bigiron.utils.shutil.which", side_effect=lambda n: "/usr/bin/mkisofs" if n == "mkisofs" else None):
            assert find_binary(["genisoimage", "mkisofs"]) == "mkisofs"
        with patch("bigiron.utils.shutil.which", return_value=None):
            assert find_binary(["genisoimage"]) is None

    def test_element_to_str_has_no_declaration(self):
        root = Element("interface", type="bridge")
        SubElement(root, "source", bridge="br0")
        xml = element_to_str(root)
        assert not xml.startswith("<?xml")
        assert '<source bridge="br0"/>' in xml
