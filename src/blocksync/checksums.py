from __future__ import annotations

import hashlib
import logging
import threading
from enum import Enum
from functools import partial
from typing import Callable, Protocol

from .block import DEFAULT_BLOCK_SIZE, BlockChecksum
from .cancel import CancellationToken
from .channel import Channel
from .error import BlockReadError, ChannelClosed, InvalidInputError
from .rolling_checksum import rolling_hash

logger = logging.getLogger(__name__)


class Hash(Protocol):
  def update(self, data: bytes, /) -> None: ...

  def digest(self) -> bytes: ...


HashFactory = Callable[[], Hash]


class Readable(Protocol):
  def read(self, size: int, /) -> bytes: ...


class StrongMode(str, Enum):
  """How the strong checksum of a block is derived."""

  DIGEST = 'digest'
  LEGACY = 'legacy'

  def __str__(self) -> str:
    return self.value


def resolve_hash(strong_hash: HashFactory | str | None) -> HashFactory:
  """
  Turn the ``strong_hash`` argument into a factory of fresh hash objects.

  ``None`` selects MD5. A string is looked up with ``hashlib.new``.
  """
  if strong_hash is None:
    return hashlib.md5

  if isinstance(strong_hash, str):
    try:
      hashlib.new(strong_hash)
    except (ValueError, TypeError) as exc:
      raise InvalidInputError(f'Unsupported hash algorithm: {strong_hash}') from exc
    return partial(hashlib.new, strong_hash)

  if not callable(strong_hash):
    raise InvalidInputError('strong_hash must be a hash name or a callable returning a hash')

  return strong_hash


def strong_checksum(
  block: bytes, factory: HashFactory = hashlib.md5, mode: StrongMode = StrongMode.DIGEST
) -> bytes:
  """
  Strong checksum of ``block``.

  ``StrongMode.DIGEST`` hashes the block's bytes alone. ``StrongMode.LEGACY``
  returns the block followed by the digest of an empty input, which is what
  older indexes stored; use it only to compare against such an index.
  """
  digest = factory()

  if mode is StrongMode.LEGACY:
    return bytes(block) + digest.digest()

  digest.update(block)
  return digest.digest()


def checksums(
  source: Readable | None,
  strong_hash: HashFactory | str | None = None,
  *,
  token: CancellationToken | None = None,
  block_size: int = DEFAULT_BLOCK_SIZE,
  strong_mode: StrongMode = StrongMode.DIGEST,
) -> Channel[BlockChecksum]:
  """
  Stream a ``BlockChecksum`` for every ``block_size`` block of ``source``.

  Reading happens on a background thread and this function returns at once.
  Records are handed over one at a time through an unbuffered channel, so the
  generator never reads ahead of its consumer. A read error yields a record
  with ``error`` set and reading carries on with the next block; deciding
  whether that is fatal is up to the consumer. When ``token`` is cancelled the
  stream ends with a single record carrying the cancellation error.

  The returned channel is always closed when the generator stops. ``source``
  itself is never closed.
  """
  if source is None or not callable(getattr(source, 'read', None)):
    raise InvalidInputError('A readable source is required')

  if isinstance(block_size, bool) or not isinstance(block_size, int) or block_size <= 0:
    raise InvalidInputError('block_size must be a positive integer')

  factory = resolve_hash(strong_hash)
  mode = StrongMode(strong_mode)
  channel: Channel[BlockChecksum] = Channel()

  thread = threading.Thread(
    target=_generate,
    args=(source, channel, token or CancellationToken(), factory, block_size, mode),
    name='blocksync-checksums',
    daemon=True,
  )
  thread.start()

  return channel


def _generate(
  source: Readable,
  channel: Channel[BlockChecksum],
  token: CancellationToken,
  factory: HashFactory,
  block_size: int,
  mode: StrongMode,
) -> None:
  index = 0
  fault: BaseException | None = None

  try:
    while True:
      if token.cancelled():
        logger.debug('checksum generation cancelled at block %d', index)
        channel.send(BlockChecksum(index=index, error=token.error))
        return

      try:
        block = source.read(block_size)
      except Exception as exc:
        if isinstance(exc, ValueError) and getattr(source, 'closed', False):
          # every later read would fail the same way
          raise
        logger.warning('failed reading block %d: %s', index, exc)
        error = BlockReadError(f'failed reading block {index}')
        error.__cause__ = exc
        channel.send(BlockChecksum(index=index, error=error))
        index += 1
        continue

      if not block:
        return

      block = bytes(block)
      channel.send(
        BlockChecksum(
          index=index,
          weak=rolling_hash(block),
          strong=strong_checksum(block, factory, mode),
        )
      )
      index += 1
  except ChannelClosed:
    logger.debug('consumer closed the checksum stream at block %d', index)
  except Exception as exc:
    logger.exception('checksum generation failed at block %d', index)
    fault = exc
  finally:
    channel.close(error=fault)
