from __future__ import annotations

import hashlib
import io
import math
import time

import pytest

from blocksync.block import DEFAULT_BLOCK_SIZE, BlockChecksum
from blocksync.cancel import CancellationToken
from blocksync.checksums import StrongMode, checksums, resolve_hash, strong_checksum
from blocksync.error import (
  BlockReadError,
  Cancelled,
  ChannelClosed,
  ChecksumError,
  DeadlineExceeded,
  InvalidInputError,
)
from blocksync.rolling_checksum import rolling_hash


def collect(stream, timeout: float = 5) -> list[BlockChecksum]:
  records = []
  while True:
    try:
      records.append(stream.receive(timeout=timeout))
    except ChannelClosed:
      return records


class CancellingSource:
  """Serves ``data`` and cancels ``token`` while serving the read at ``cancel_on``."""

  def __init__(self, data: bytes, token: CancellationToken, cancel_on: int):
    self._stream = io.BytesIO(data)
    self._token = token
    self._cancel_on = cancel_on
    self.calls = 0

  def read(self, size: int) -> bytes:
    if self.calls == self._cancel_on:
      self._token.cancel('stop requested')
    self.calls += 1
    return self._stream.read(size)


@pytest.mark.parametrize('length', [0, 1, 3, 4, 5, 16, 17])
def test_emits_one_record_per_block(length: int) -> None:
  block_size = 4
  data = bytes(range(length))

  records = collect(checksums(io.BytesIO(data), block_size=block_size))

  assert len(records) == math.ceil(length / block_size)
  assert [record.index for record in records] == list(range(len(records)))
  assert all(record.ok for record in records)


def test_checksums_cover_exact_bytes_read() -> None:
  data = b'AAAABBBBCC'

  records = collect(checksums(io.BytesIO(data), block_size=4))

  blocks = [b'AAAA', b'BBBB', b'CC']
  assert [record.weak for record in records] == [rolling_hash(block) for block in blocks]
  assert [record.strong for record in records] == [hashlib.md5(block).digest() for block in blocks]


def test_default_block_size_is_used() -> None:
  data = b'x' * (DEFAULT_BLOCK_SIZE + 1)

  records = collect(checksums(io.BytesIO(data)))

  assert len(records) == 2
  assert records[1].strong == hashlib.md5(b'x').digest()


def test_identical_blocks_share_checksums_independently_of_position() -> None:
  records = collect(checksums(io.BytesIO(b'abcdXXXXabcd'), block_size=4))

  assert records[0].weak == records[2].weak
  assert records[0].strong == records[2].strong
  assert records[0].strong != records[1].strong


def test_pluggable_hash_factory_and_name() -> None:
  data = b'0123456789'

  by_factory = collect(checksums(io.BytesIO(data), hashlib.sha256, block_size=5))
  by_name = collect(checksums(io.BytesIO(data), 'sha256', block_size=5))

  expected = [hashlib.sha256(b'01234').digest(), hashlib.sha256(b'56789').digest()]
  assert [record.strong for record in by_factory] == expected
  assert [record.strong for record in by_name] == expected


def test_legacy_strong_mode_reproduces_old_output() -> None:
  records = collect(
    checksums(io.BytesIO(b'abcdef'), block_size=4, strong_mode=StrongMode.LEGACY)
  )

  empty = hashlib.md5(b'').digest()
  assert [record.strong for record in records] == [b'abcd' + empty, b'ef' + empty]


def test_strong_checksum_modes() -> None:
  assert strong_checksum(b'data') == hashlib.md5(b'data').digest()
  assert strong_checksum(b'data', hashlib.sha1) == hashlib.sha1(b'data').digest()
  assert strong_checksum(b'data', mode=StrongMode.LEGACY) == b'data' + hashlib.md5().digest()


def test_resolve_hash_rejects_unknown_algorithm() -> None:
  with pytest.raises(InvalidInputError):
    resolve_hash('not-a-real-hash')

  with pytest.raises(InvalidInputError):
    checksums(io.BytesIO(b''), 'not-a-real-hash')


def test_none_source_fails_fast() -> None:
  with pytest.raises(InvalidInputError, match='source'):
    checksums(None)


@pytest.mark.parametrize('block_size', [0, -4, True])
def test_invalid_block_size_fails_fast(block_size: int) -> None:
  with pytest.raises(InvalidInputError):
    checksums(io.BytesIO(b'data'), block_size=block_size)


def test_read_error_is_reported_and_generation_continues(flaky_source) -> None:
  source = flaky_source(b'AAAABBBBCCCC', {1})

  records = collect(checksums(source, block_size=4))

  assert [record.index for record in records] == [0, 1, 2, 3]
  assert records[0].ok
  assert isinstance(records[1].error, BlockReadError)
  assert isinstance(records[1].error.__cause__, OSError)
  assert 'disk hiccup' in str(records[1].error.__cause__)
  # the failed read consumed nothing, so the next attempt picks up the second block
  assert records[2].strong == hashlib.md5(b'BBBB').digest()
  assert records[3].strong == hashlib.md5(b'CCCC').digest()


def test_cancelled_before_start_emits_single_terminal_record(flaky_source) -> None:
  token = CancellationToken()
  token.cancel('nope')
  source = flaky_source(b'AAAABBBB', set())

  records = collect(checksums(source, token=token, block_size=4))

  assert len(records) == 1
  assert records[0].index == 0
  assert isinstance(records[0].error, Cancelled)
  assert source.calls == 0


def test_cancellation_mid_stream_ends_with_one_error_record() -> None:
  token = CancellationToken()
  source = CancellingSource(b'A' * 40, token, cancel_on=2)

  records = collect(checksums(source, token=token, block_size=4))

  assert [record.index for record in records] == [0, 1, 2, 3]
  assert all(record.ok for record in records[:3])
  assert isinstance(records[3].error, Cancelled)
  assert str(records[3].error) == 'stop requested'
  assert source.calls == 3


def test_deadline_is_reported_as_deadline_exceeded() -> None:
  token = CancellationToken(timeout=0)

  records = collect(checksums(io.BytesIO(b'data'), token=token))

  assert len(records) == 1
  assert isinstance(records[0].error, DeadlineExceeded)


def test_generator_is_throttled_by_consumer(flaky_source) -> None:
  source = flaky_source(b'A' * 64, set())
  stream = checksums(source, block_size=4)

  first = stream.receive(timeout=5)
  assert first.index == 0
  # one block handed over and at most one more read while waiting to send it
  assert source.calls <= 2

  stream.close()


def test_consumer_close_stops_generator(flaky_source) -> None:
  source = flaky_source(b'A' * 4096, set())
  stream = checksums(source, block_size=4)

  stream.receive(timeout=5)
  stream.close()
  time.sleep(0.1)
  calls = source.calls
  time.sleep(0.1)

  assert source.calls == calls
  assert calls <= 3
  assert stream.closed


def test_non_os_read_errors_are_reported_and_generation_continues() -> None:
  class TruncatedSource:
    def __init__(self) -> None:
      self.calls = 0

    def read(self, size: int) -> bytes:
      self.calls += 1
      if self.calls == 2:
        raise EOFError('Compressed file ended before the end-of-stream marker was reached')
      if self.calls > 3:
        return b''
      return b'abcd'

  records = collect(checksums(TruncatedSource(), block_size=4))

  assert [record.index for record in records] == [0, 1, 2]
  assert records[0].ok
  assert isinstance(records[1].error, BlockReadError)
  assert isinstance(records[1].error.__cause__, EOFError)
  assert records[2].strong == hashlib.md5(b'abcd').digest()


def test_closed_source_stops_stream_with_error() -> None:
  source = io.BytesIO(b'abcdefgh')
  source.close()

  stream = checksums(source, block_size=4)

  with pytest.raises(ChecksumError) as excinfo:
    stream.receive(timeout=5)

  assert isinstance(excinfo.value.__cause__, ValueError)
  assert stream.closed


def test_internal_fault_closes_stream_with_error() -> None:
  calls = []

  def failing_md5():
    calls.append(1)
    if len(calls) == 2:
      raise RuntimeError('hash backend unavailable')
    return hashlib.md5()

  stream = checksums(io.BytesIO(b'abcdefghijkl'), failing_md5, block_size=4)

  assert stream.receive(timeout=5).index == 0

  with pytest.raises(ChecksumError) as excinfo:
    stream.receive(timeout=5)

  assert isinstance(excinfo.value.__cause__, RuntimeError)
  assert stream.closed


def test_source_is_not_closed() -> None:
  source = io.BytesIO(b'abcdefgh')

  collect(checksums(source, block_size=4))

  assert not source.closed
