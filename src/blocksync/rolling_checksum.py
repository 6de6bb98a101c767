_MOD = 1 << 16


class RollingChecksum:
  """
  Implements the rolling checksum described in the rsync algorithm.

  For additional reading on the algorithm, check out https://rsync.samba.org/tech_report/node3.html.
  """

  def __init__(self, block: bytes, block_size: int | None = None):
    self.block_size = len(block) if block_size is None else block_size
    self.s1 = sum(block) % _MOD
    self.s2 = (
      sum((self.block_size - idx + 1) * byte for idx, byte in enumerate(block, start=1)) % _MOD
    )

  def digest(self) -> int:
    return (self.s2 << 16) | self.s1

  def roll(self, out_byte: int, in_byte: int) -> None:
    self.s1 = (self.s1 - out_byte + in_byte) % _MOD
    self.s2 = (self.s2 - self.block_size * out_byte + self.s1) % _MOD


def rolling_hash(block: bytes) -> int:
  """Weak 32-bit checksum of a whole block."""
  return RollingChecksum(block).digest()
