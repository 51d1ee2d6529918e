"""
MutationSerializer: the process-wide gate over the shared working tree.

At most one mutating git operation runs at any instant. Waiters are served
strictly in arrival order (ticket queue on a threading.Condition). A ticket
that is still queued can be cancelled; once a ticket holds the gate it runs
to completion and is released by the hold() context manager on every exit
path, exceptions included.

Usage:
    with serializer.hold("record_change:blog/first-post"):
        gateway.add()
        gateway.commit(message)
"""

import itertools
import logging
import threading
import time
from collections import deque
from contextlib import contextmanager
from typing import Deque, Iterator, Optional

from .errors import GateTimeout, OperationCancelled

logger = logging.getLogger(__name__)

QUEUED = "queued"
ACTIVE = "active"
RELEASED = "released"
CANCELLED = "cancelled"
TIMED_OUT = "timed_out"


class GateTicket:
    """One request's place in the gate queue."""

    def __init__(self, serializer: "MutationSerializer", ticket_id: int, owner: str):
        self._serializer = serializer
        self.ticket_id = ticket_id
        self.owner = owner
        self.state = QUEUED
        self.enqueued_at = time.monotonic()
        self.acquired_at: Optional[float] = None

    def cancel(self) -> bool:
        """
        Withdraw the ticket if it has not started yet.

        Returns:
            True if the ticket was removed from the queue, False if it already
            holds (or held) the gate.
        """
        return self._serializer._cancel(self)

    def __repr__(self) -> str:
        return f"GateTicket(id={self.ticket_id}, owner={self.owner!r}, state={self.state})"


class MutationSerializer:
    """FIFO mutual-exclusion gate for mutating working-tree operations."""

    def __init__(self, acquire_timeout: Optional[float] = None):
        """
        Args:
            acquire_timeout: Default seconds to wait for the gate (None = forever)
        """
        self.acquire_timeout = acquire_timeout
        self._cond = threading.Condition()
        self._queue: Deque[GateTicket] = deque()
        self._holder: Optional[GateTicket] = None
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def enqueue(self, owner: str) -> GateTicket:
        """Take a place in the queue without waiting."""
        with self._cond:
            ticket = GateTicket(self, next(self._ids), owner)
            self._queue.append(ticket)
            logger.debug(f"Gate ticket queued: {ticket} (queue={len(self._queue)})")
            return ticket

    def wait(self, ticket: GateTicket, timeout: Optional[float] = None) -> GateTicket:
        """
        Block until `ticket` holds the gate.

        Raises:
            OperationCancelled: If the ticket was cancelled while queued
            GateTimeout: If the gate was not acquired within timeout
        """
        if timeout is None:
            timeout = self.acquire_timeout
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._cond:
            while True:
                if ticket.state == CANCELLED:
                    raise OperationCancelled(f"{ticket.owner} cancelled before start")
                if ticket.state != QUEUED:
                    raise RuntimeError(f"Ticket cannot wait in state {ticket.state}")

                if self._holder is None and self._queue and self._queue[0] is ticket:
                    self._queue.popleft()
                    self._holder = ticket
                    ticket.state = ACTIVE
                    ticket.acquired_at = time.monotonic()
                    logger.debug(
                        f"Gate acquired by {ticket.owner} after "
                        f"{ticket.acquired_at - ticket.enqueued_at:.3f}s"
                    )
                    return ticket

                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    self._remove_queued(ticket)
                    ticket.state = TIMED_OUT
                    self._cond.notify_all()
                    raise GateTimeout(
                        f"{ticket.owner} waited {timeout}s for the mutation gate"
                    )
                self._cond.wait(remaining)

    def acquire(self, owner: str, timeout: Optional[float] = None) -> GateTicket:
        """Enqueue and wait; the returned ticket must be passed to release()."""
        return self.wait(self.enqueue(owner), timeout=timeout)

    def release(self, ticket: GateTicket) -> None:
        """Release the gate held by `ticket` and wake the next waiter."""
        with self._cond:
            if self._holder is not ticket:
                raise RuntimeError(f"{ticket} does not hold the mutation gate")
            self._holder = None
            ticket.state = RELEASED
            held_for = time.monotonic() - (ticket.acquired_at or time.monotonic())
            logger.debug(f"Gate released by {ticket.owner} after {held_for:.3f}s")
            self._cond.notify_all()

    @contextmanager
    def hold(
        self,
        owner: str,
        timeout: Optional[float] = None,
        ticket: Optional[GateTicket] = None,
    ) -> Iterator[GateTicket]:
        """
        Hold the gate for the duration of the with-block.

        Args:
            owner: Human-readable operation name for logs
            timeout: Seconds to wait for the gate (defaults to acquire_timeout)
            ticket: A ticket obtained earlier from enqueue(), to keep its
                    queue position
        """
        ticket = ticket or self.enqueue(owner)
        self.wait(ticket, timeout=timeout)
        try:
            yield ticket
        finally:
            self.release(ticket)

    @property
    def is_locked(self) -> bool:
        with self._cond:
            return self._holder is not None

    @property
    def holder(self) -> Optional[str]:
        with self._cond:
            return self._holder.owner if self._holder else None

    @property
    def queue_length(self) -> int:
        with self._cond:
            return len(self._queue)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _cancel(self, ticket: GateTicket) -> bool:
        with self._cond:
            if ticket.state != QUEUED:
                return False
            self._remove_queued(ticket)
            ticket.state = CANCELLED
            logger.debug(f"Gate ticket cancelled: {ticket}")
            self._cond.notify_all()
            return True

    def _remove_queued(self, ticket: GateTicket) -> None:
        try:
            self._queue.remove(ticket)
        except ValueError:
            pass
