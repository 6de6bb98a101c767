from __future__ import annotations

import threading
import time

from .error import Cancelled, DeadlineExceeded


class CancellationToken:
  """
  Cooperative cancellation signal shared between a caller and a running operation.

  Nothing is interrupted when a token fires: the generator and the reconstruction
  engine poll ``cancelled()`` before each unit of work and stop at that point.
  A token may carry a deadline and may be derived from a parent, in which case
  cancelling the parent cancels every child.
  """

  def __init__(
    self, *, timeout: float | None = None, parent: CancellationToken | None = None
  ) -> None:
    self._event = threading.Event()
    self._lock = threading.Lock()
    self._error: Cancelled | None = None
    self._parent = parent
    self._deadline = time.monotonic() + timeout if timeout is not None else None

  def cancel(self, reason: str = 'operation cancelled') -> None:
    self._set_error(Cancelled(reason))

  def cancelled(self) -> bool:
    if self._event.is_set():
      return True

    if self._deadline is not None and time.monotonic() >= self._deadline:
      self._set_error(DeadlineExceeded('deadline exceeded'))
      return True

    if self._parent is not None and self._parent.cancelled():
      self._set_error(self._parent.error or Cancelled('parent cancelled'))
      return True

    return False

  @property
  def error(self) -> Cancelled | None:
    if not self.cancelled():
      return None
    return self._error

  def wait(self, timeout: float | None = None) -> bool:
    """Block until the token is cancelled or ``timeout`` elapses."""
    end = time.monotonic() + timeout if timeout is not None else None

    while not self.cancelled():
      step = 0.05
      if end is not None:
        remaining = end - time.monotonic()
        if remaining <= 0:
          return False
        step = min(step, remaining)
      self._event.wait(step)

    return True

  def child(self, *, timeout: float | None = None) -> CancellationToken:
    return CancellationToken(timeout=timeout, parent=self)

  def _set_error(self, error: Cancelled) -> None:
    with self._lock:
      if self._error is None:
        self._error = error
      self._event.set()
