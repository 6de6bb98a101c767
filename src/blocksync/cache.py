from __future__ import annotations

import io
import mmap
import os
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Protocol, runtime_checkable

from .error import InvalidInputError

_Buffer = bytes | bytearray | memoryview | mmap.mmap


@runtime_checkable
class ReaderAt(Protocol):
  """Random-access byte source. Fewer than ``size`` bytes means the end was reached."""

  def read_at(self, size: int, offset: int) -> bytes: ...


class BufferReaderAt:
  def __init__(self, buffer: _Buffer):
    self.buffer = buffer

  def read_at(self, size: int, offset: int) -> bytes:
    if offset < 0:
      raise ValueError(f'negative offset: {offset}')
    return bytes(self.buffer[offset : offset + size])


class FileReaderAt:
  """
  Positional reads on an open binary file.

  Uses ``os.pread`` when the file has a descriptor so the file position is left
  untouched. Otherwise falls back to ``seek`` and ``read`` and restores the
  previous position afterwards.
  """

  def __init__(self, fh: IO[bytes]):
    self.fh = fh

  def read_at(self, size: int, offset: int) -> bytes:
    if offset < 0:
      raise ValueError(f'negative offset: {offset}')

    fd = self._fileno()

    if fd is not None and hasattr(os, 'pread'):
      return self._pread(fd, size, offset)

    position = self.fh.tell()
    try:
      self.fh.seek(offset)
      return self._read_full(size)
    finally:
      self.fh.seek(position)

  def _fileno(self) -> int | None:
    try:
      return self.fh.fileno()
    except (AttributeError, io.UnsupportedOperation):
      return None

  def _pread(self, fd: int, size: int, offset: int) -> bytes:
    chunks: list[bytes] = []
    remaining = size

    while remaining > 0:
      chunk = os.pread(fd, remaining, offset)
      if not chunk:
        break
      chunks.append(chunk)
      remaining -= len(chunk)
      offset += len(chunk)

    return b''.join(chunks)

  def _read_full(self, size: int) -> bytes:
    chunks: list[bytes] = []
    remaining = size

    while remaining > 0:
      chunk = self.fh.read(remaining)
      if not chunk:
        break
      chunks.append(chunk)
      remaining -= len(chunk)

    return b''.join(chunks)


def as_reader_at(cache: object) -> ReaderAt:
  if isinstance(cache, ReaderAt):
    return cache

  if isinstance(cache, (bytes, bytearray, memoryview, mmap.mmap)):
    return BufferReaderAt(cache)

  if callable(getattr(cache, 'read', None)) and callable(getattr(cache, 'seek', None)):
    return FileReaderAt(cache)  # type: ignore[arg-type]

  raise InvalidInputError(f'Unsupported cache type: {type(cache).__name__}')


@contextmanager
def open_cache(path: Path | str) -> Iterator[BufferReaderAt]:
  """Memory-map ``path`` read-only for use as a block cache."""
  path = Path(path)

  if path.stat().st_size == 0:
    yield BufferReaderAt(b'')
    return

  with path.open('rb') as fh:
    with mmap.mmap(fh.fileno(), length=0, access=mmap.ACCESS_READ) as mm:
      yield BufferReaderAt(mm)
