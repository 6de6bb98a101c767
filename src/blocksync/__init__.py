from .apply import apply
from .block import DEFAULT_BLOCK_SIZE, BlockChecksum, BlockOperation
from .cache import BufferReaderAt, FileReaderAt, ReaderAt, as_reader_at, open_cache
from .cancel import CancellationToken
from .channel import Channel
from .checksums import StrongMode, checksums, strong_checksum
from .error import (
  ApplyError,
  BlockReadError,
  Cancelled,
  ChannelClosed,
  ChecksumError,
  DeadlineExceeded,
  InvalidInputError,
  SyncError,
)
from .rolling_checksum import RollingChecksum, rolling_hash
from .stats import ApplyStats

__all__ = [
  'DEFAULT_BLOCK_SIZE',
  'ApplyError',
  'ApplyStats',
  'BlockChecksum',
  'BlockOperation',
  'BlockReadError',
  'BufferReaderAt',
  'Cancelled',
  'CancellationToken',
  'Channel',
  'ChannelClosed',
  'ChecksumError',
  'DeadlineExceeded',
  'FileReaderAt',
  'InvalidInputError',
  'ReaderAt',
  'RollingChecksum',
  'StrongMode',
  'SyncError',
  'apply',
  'as_reader_at',
  'checksums',
  'open_cache',
  'rolling_hash',
  'strong_checksum',
]
