from __future__ import annotations

import threading
import time
from typing import Generic, Iterator, TypeVar

from .error import ChannelClosed, ChecksumError

T = TypeVar('T')

_EMPTY = object()


class Channel(Generic[T]):
  """
  Unbuffered handoff between one producer and one consumer.

  ``send`` returns only once the consumer has taken the item, so a slow
  consumer throttles the producer. Closing wakes every waiter: a blocked
  ``send`` raises ``ChannelClosed`` and ``receive`` raises it once the channel
  is empty. A producer may close with an error, which the consumer then sees
  as a ``ChecksumError`` instead of a clean end of stream.
  """

  def __init__(self) -> None:
    self._cond = threading.Condition()
    self._item: object = _EMPTY
    self._sent = 0
    self._received = 0
    self._closed = False
    self._fault: BaseException | None = None

  @property
  def closed(self) -> bool:
    with self._cond:
      return self._closed

  def send(self, item: T) -> None:
    with self._cond:
      while self._item is not _EMPTY and not self._closed:
        self._cond.wait()

      if self._closed:
        raise ChannelClosed('send on closed channel')

      self._item = item
      self._sent += 1
      ticket = self._sent
      self._cond.notify_all()

      while self._received < ticket and not self._closed:
        self._cond.wait()

      if self._received < ticket:
        self._item = _EMPTY
        raise ChannelClosed('channel closed before the item was received')

  def receive(self, timeout: float | None = None) -> T:
    end = time.monotonic() + timeout if timeout is not None else None

    with self._cond:
      while self._item is _EMPTY and not self._closed:
        remaining = None
        if end is not None:
          remaining = end - time.monotonic()
          if remaining <= 0:
            raise TimeoutError('timed out waiting for the next item')
        self._cond.wait(remaining)

      if self._item is not _EMPTY:
        item = self._item
        self._item = _EMPTY
        self._received += 1
        self._cond.notify_all()
        return item  # type: ignore[return-value]

      if self._fault is not None:
        raise ChecksumError('producer failed') from self._fault

      raise ChannelClosed('receive on closed channel')

  def close(self, error: BaseException | None = None) -> None:
    with self._cond:
      if self._closed:
        return
      self._closed = True
      self._fault = error
      self._cond.notify_all()

  def __iter__(self) -> Iterator[T]:
    while True:
      try:
        yield self.receive()
      except ChannelClosed:
        return
