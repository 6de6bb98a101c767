from __future__ import annotations

from dataclasses import dataclass

DEFAULT_BLOCK_SIZE = 6 * 1024


@dataclass(frozen=True, slots=True)
class BlockChecksum:
  """
  Fingerprint of one source block.

  ``weak`` and ``strong`` are meaningless when ``error`` is set; such a record
  either reports a block that could not be read or is the terminal record of a
  cancelled stream.
  """

  index: int
  weak: int = 0
  strong: bytes = b''
  error: BaseException | None = None

  @property
  def ok(self) -> bool:
    return self.error is None


@dataclass(frozen=True, slots=True)
class BlockOperation:
  """
  One step of a reconstruction.

  ``data`` holds literal bytes for a new or changed block. When it is ``None``
  the block at ``index`` is copied from the cache instead.
  """

  index: int
  data: bytes | None = None
  error: BaseException | None = None

  @classmethod
  def literal(cls, index: int, data: bytes) -> BlockOperation:
    return cls(index=index, data=bytes(data))

  @classmethod
  def reuse(cls, index: int) -> BlockOperation:
    return cls(index=index)

  @classmethod
  def failed(cls, index: int, error: BaseException) -> BlockOperation:
    return cls(index=index, error=error)

  @property
  def is_literal(self) -> bool:
    return self.data is not None

  @property
  def ok(self) -> bool:
    return self.error is None
