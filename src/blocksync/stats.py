from dataclasses import dataclass


@dataclass(frozen=True)
class ApplyStats:
  blocks_written: int
  bytes_transferred: int
  bytes_reused: int

  @property
  def total_bytes(self) -> int:
    return self.bytes_transferred + self.bytes_reused
