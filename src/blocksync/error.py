class SyncError(Exception):
  """Base class for every error raised by blocksync."""


class InvalidInputError(SyncError, ValueError):
  pass


class Cancelled(SyncError):
  """Raised or carried when a cancellation token has been triggered."""


class DeadlineExceeded(Cancelled):
  pass


class BlockReadError(SyncError):
  """A single block could not be read from the source."""


class ChecksumError(SyncError):
  """The checksum generator stopped because of an unexpected fault."""


class ApplyError(SyncError):
  pass


class ChannelClosed(SyncError):
  pass
