from unittest.mock import MagicMock

import pytest


def run_return(
    failed: bool = False, stdout: str = "", stderr: str = "", return_code: int = 0
) -> MagicMock:
    """
    Helper function that returns a MagicMock intended
    to mock the return value of a cx.run() or cx.sudo() call.

    It is not a fixture since it needs to be invoked as a
    side effect in parametrized tests.
    """
    mock_return = MagicMock()
    mock_return.stdout = stdout
    mock_return.stderr = stderr
    mock_return.failed = failed
    mock_return.return_code = return_code if return_code or not failed else 1
    return mock_return


@pytest.fixture
def connection(mocker):
    """
    Fixture to mock the command runner (invoke Context or
    fabric Connection). Defaults to successful runs with no output.
    """
    cx = mocker.MagicMock()
    cx.run.return_value = run_return()
    cx.sudo.return_value = run_return()
    return cx


@pytest.fixture
def connection_failed(connection):
    """
    Fixture to mock the command runner with failed runs.
    """
    connection.run.return_value = run_return(True, stderr="Generic error")
    connection.sudo.return_value = run_return(True, stderr="Generic error")
    return connection
