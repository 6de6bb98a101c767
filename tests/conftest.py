from __future__ import annotations

import io
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import pytest

from blocksync.__main__ import main as cli_main


@dataclass(slots=True)
class CompletedRun:
  exit_code: int
  stdout: str
  stderr: str


class FlakySource:
  """
  Readable that raises ``OSError`` on the given read calls (zero-based) and
  otherwise serves ``data`` sequentially.
  """

  def __init__(self, data: bytes, failures: set[int]):
    self._stream = io.BytesIO(data)
    self._failures = failures
    self.calls = 0

  def read(self, size: int) -> bytes:
    call = self.calls
    self.calls += 1
    if call in self._failures:
      raise OSError(f'disk hiccup on call {call}')
    return self._stream.read(size)


@pytest.fixture
def flaky_source() -> Callable[[bytes, set[int]], FlakySource]:
  return FlakySource


@pytest.fixture
def run_cli(
  monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> Callable[..., CompletedRun]:
  """
  Execute the CLI with arguments while capturing output.

  The first argument should be a working directory (typically ``tmp_path``) so tests may control
  the execution environment. Additional positional arguments are passed to the CLI after being
  converted to strings, allowing ``Path`` instances to be supplied directly.
  """

  def _run_cli(working_dir: Path, *args: object) -> CompletedRun:
    argv = ['blocksync', *(str(arg) for arg in args)]
    monkeypatch.setattr(sys, 'argv', argv)
    monkeypatch.chdir(working_dir)
    monkeypatch.setenv('COLUMNS', '200')

    exit_code = cli_main()
    captured = capsys.readouterr()

    return CompletedRun(exit_code=exit_code, stdout=captured.out, stderr=captured.err)

  return _run_cli
