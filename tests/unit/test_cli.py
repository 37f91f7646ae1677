from __future__ import annotations

import json
from argparse import Namespace
from pathlib import Path

import pytest

from bizregextract import cli
from bizregextract.exceptions import DependencyError

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def test_build_parser_supports_version_flag(capsys) -> None:
    parser = cli.build_parser()

    with pytest.raises(SystemExit) as exc_info:
        parser.parse_args(["--version"])
    assert exc_info.value.code == 0

    captured = capsys.readouterr()
    assert "0.1.0" in captured.out


def test_build_parser_extract_arguments() -> None:
    args = cli.build_parser().parse_args(["extract", "--image", "t.png", "--codes", "12345,67890", "--no-email"])

    assert args.command == "extract"
    assert args.image_path == Path("t.png")
    assert args.codes == "12345,67890"
    assert args.no_email is True
    assert args.output_path is None


def test_main_without_command_prints_help(capsys) -> None:
    assert cli.main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()


def test_main_extract_writes_csv_in_mock_mode(monkeypatch, tmp_path: Path, capsys) -> None:
    monkeypatch.setenv("MOCK_LLM", "true")
    monkeypatch.setenv("RESEND_API_KEY", "re_test_key")
    image = tmp_path / "table.png"
    image.write_bytes(PNG_BYTES)
    output = tmp_path / "out" / "result.csv"

    exit_code = cli.main(
        ["extract", "--image", str(image), "--codes", "03275", "--output", str(output), "--no-email"],
    )

    assert exit_code == 0
    content = output.read_text(encoding="utf-8")
    assert "Test Company A" in content
    summary = json.loads(capsys.readouterr().out)
    assert summary["provider"] == "mock"
    assert summary["total_found"] == 2
    assert summary["emailed"] is False


def test_main_extract_returns_error_on_invalid_codes(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MOCK_LLM", "true")
    monkeypatch.setenv("RESEND_API_KEY", "re_test_key")
    image = tmp_path / "table.png"
    image.write_bytes(PNG_BYTES)

    assert cli.main(["extract", "--image", str(image), "--codes", "1234", "--no-email"]) == 1


def test_main_returns_error_on_missing_configuration() -> None:
    assert cli.main(["check-model"]) == 1


def test_main_runs_selected_handler(mocker) -> None:
    parser = mocker.Mock()
    parser.parse_args.return_value = Namespace(command="check-model")
    mocker.patch("bizregextract.cli.build_parser", return_value=parser)
    mocker.patch("bizregextract.cli.get_settings")
    mocker.patch("bizregextract.cli.configure_logging")
    handler = mocker.Mock(return_value=0)
    mocker.patch.dict(cli._HANDLERS, {"check-model": handler})

    assert cli.main(["check-model"]) == 0
    handler.assert_called_once()


def test_main_returns_130_on_keyboard_interrupt(mocker) -> None:
    mocker.patch("bizregextract.cli.get_settings")
    mocker.patch("bizregextract.cli.configure_logging")
    mocker.patch.dict(cli._HANDLERS, {"check-model": mocker.Mock(side_effect=KeyboardInterrupt)})

    assert cli.main(["check-model"]) == 130


def test_check_model_prints_mock_report(monkeypatch, capsys) -> None:
    monkeypatch.setenv("MOCK_LLM", "true")
    monkeypatch.setenv("RESEND_API_KEY", "re_test_key")

    assert cli.main(["check-model"]) == 0
    assert json.loads(capsys.readouterr().out)["provider"] == "mock"


def test_serve_fails_when_server_dependencies_are_missing(mocker) -> None:
    mocker.patch("bizregextract.cli.get_settings")
    mocker.patch("bizregextract.cli.configure_logging")
    mocker.patch(
        "bizregextract.cli.ensure_cli_dependencies_for_serve",
        side_effect=DependencyError(missing_package=["uvicorn"], message="serve"),
    )

    assert cli.main(["serve"]) == 1
