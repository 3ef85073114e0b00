import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from loguru import logger
from typer.testing import CliRunner


@pytest.fixture
def runner(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[CliRunner]:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("KUBEPLATE_NAMESPACE", raising=False)
    yield CliRunner()

    # The CLI points the log handler at the runner's stderr, which is closed after invocation.
    logger.remove()
    logger.add(sys.stderr)
