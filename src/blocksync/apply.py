from __future__ import annotations

import logging
from typing import Iterable, Protocol

from .block import DEFAULT_BLOCK_SIZE, BlockOperation
from .cache import ReaderAt, as_reader_at
from .cancel import CancellationToken
from .error import ApplyError, InvalidInputError
from .stats import ApplyStats

logger = logging.getLogger(__name__)


class Writable(Protocol):
  def write(self, data: bytes, /) -> int | None: ...


def apply(
  destination: Writable,
  cache: object | None,
  operations: Iterable[BlockOperation],
  *,
  token: CancellationToken | None = None,
  block_size: int = DEFAULT_BLOCK_SIZE,
) -> ApplyStats:
  """
  Reconstruct a file by writing each operation's block to ``destination`` in order.

  Literal operations are written as they are. The others copy ``block_size``
  bytes from ``cache`` at ``index * block_size``; a short read at the end of
  the cache is logged and the bytes that were available are used.

  The first failed operation, cache error, write error or cancellation aborts
  the reconstruction with an ``ApplyError`` chained to the cause. Remaining
  operations are left unread: when ``operations`` is fed by another thread,
  that producer must be able to finish or give up on its own, otherwise it
  blocks forever.
  """
  if destination is None or not callable(getattr(destination, 'write', None)):
    raise InvalidInputError('A writable destination is required')

  if isinstance(block_size, bool) or not isinstance(block_size, int) or block_size <= 0:
    raise InvalidInputError('block_size must be a positive integer')

  reader = as_reader_at(cache) if cache is not None else None
  token = token or CancellationToken()

  blocks = 0
  transferred = 0
  reused = 0

  for operation in operations:
    if token.cancelled():
      raise ApplyError('failed applying block operations') from token.error

    if operation.error is not None:
      raise ApplyError(f'failed applying operation {operation.index}') from operation.error

    if operation.data is not None:
      block = operation.data
      transferred += len(block)
    else:
      block = _read_cached_block(reader, operation.index, block_size)
      reused += len(block)

    _write_block(destination, block, operation.index)
    blocks += 1

  logger.debug(
    'applied %d blocks: %d bytes transferred, %d bytes reused', blocks, transferred, reused
  )

  return ApplyStats(blocks_written=blocks, bytes_transferred=transferred, bytes_reused=reused)


def _read_cached_block(reader: ReaderAt | None, index: int, block_size: int) -> bytes:
  if reader is None:
    raise ApplyError(f'failed reading cached block {index}: no cache was provided')

  offset = index * block_size

  try:
    block = reader.read_at(block_size, offset)
  except Exception as exc:
    raise ApplyError(f'failed reading cached block {index}') from exc

  if len(block) < block_size:
    logger.warning(
      'short read from cache for block %d at offset %d: got %d of %d bytes',
      index,
      offset,
      len(block),
      block_size,
    )

  return block


def _write_block(destination: Writable, block: bytes, index: int) -> None:
  remaining = bytes(block)

  try:
    while remaining:
      written = destination.write(remaining)
      if written is None or written >= len(remaining):
        break
      if written <= 0:
        raise OSError(f'wrote {written} of {len(remaining)} bytes')
      remaining = remaining[written:]
  except Exception as exc:
    raise ApplyError(f'failed writing block {index} to destination') from exc
