import sys
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from engage_pod.__main__ import main
from engage_pod.errors import AuthenticationError
from engage_pod.utilities.session import FileSessionStore

_MAIN_MODULE = "engage_pod.__main__"


@pytest.fixture(autouse=True)
def mock_create_logger() -> Iterator[MagicMock]:
    with patch(f"{_MAIN_MODULE}.create_logger") as mock:
        yield mock


@pytest.fixture(autouse=True)
def _no_session_file(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ENGAGE_SESSION_FILE", raising=False)


@patch(f"{_MAIN_MODULE}.EngagePod")
def test_cli_check_logs_in_and_out(mock_pod_cls: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    mock_pod_cls.return_value.endpoint = "http://api5.silverpop.com/XMLAPI;jsessionid=X"
    mock_pod_cls.return_value.log_out.return_value = True
    assert main(["check"]) == 0
    captured = capsys.readouterr()
    assert "jsessionid=X" in captured.out
    assert "Logged out." in captured.out
    assert mock_pod_cls.call_args.kwargs["session_store"] is None


@patch(f"{_MAIN_MODULE}.EngagePod")
def test_cli_check_rejected_logout(mock_pod_cls: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    mock_pod_cls.return_value.log_out.return_value = False
    assert main(["check"]) == 1
    assert "rejected" in capsys.readouterr().err


@patch(f"{_MAIN_MODULE}.EngagePod")
def test_cli_check_keeps_stored_session(
    mock_pod_cls: MagicMock,
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("ENGAGE_SESSION_FILE", str(tmp_path / "session.json"))
    assert main(["check"]) == 0
    assert isinstance(mock_pod_cls.call_args.kwargs["session_store"], FileSessionStore)
    mock_pod_cls.return_value.log_out.assert_not_called()


@patch(f"{_MAIN_MODULE}.EngagePod")
def test_cli_lists_prints_rows(mock_pod_cls: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    mock_pod_cls.return_value.get_lists.return_value = [{"ID": "1", "NAME": "Main"}, {"ID": "2"}]
    assert main(["lists", "--type", "0", "--shared"]) == 0
    mock_pod_cls.return_value.get_lists.assert_called_once_with(list_type=0, is_private=False)
    assert capsys.readouterr().out.splitlines() == ["1\tMain", "2\t"]


def test_cli_lists_rejects_unknown_type() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["lists", "--type", "3"])
    assert exc_info.value.code == 2


@patch(f"{_MAIN_MODULE}.EngagePod")
def test_cli_job_status(mock_pod_cls: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    mock_pod_cls.return_value.get_job_status.return_value.text.return_value = "COMPLETE"
    assert main(["job-status", "77"]) == 0
    mock_pod_cls.return_value.get_job_status.assert_called_once_with("77")
    assert capsys.readouterr().out.strip() == "COMPLETE"


@patch(f"{_MAIN_MODULE}.EngagePod")
def test_cli_reports_client_errors(mock_pod_cls: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    mock_pod_cls.side_effect = AuthenticationError("Login Error: Invalid user name or password")
    assert main(["check"]) == 1
    assert "Invalid user name or password" in capsys.readouterr().err


@patch(f"{_MAIN_MODULE}.EngagePod")
def test_cli_logs_to_stderr(mock_pod_cls: MagicMock, mock_create_logger: MagicMock) -> None:
    mock_pod_cls.return_value.get_lists.return_value = []
    assert main(["lists"]) == 0
    mock_create_logger.assert_called_once_with(stream=sys.stderr)
