"""Listener: cancellable background consumption of one subscription."""

import enum
import logging
import queue
import threading
from typing import Callable, Optional

from courier.errors import PubSubError
from courier.message import Message

logger = logging.getLogger(__name__)


class ListenerState(enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class Listener:
    """
    Continuous consumer of a subscription, exposed as an iterator of messages.

    One background thread repeatedly calls ``pull`` and hands each message to
    the reader through a single-slot queue, in the order the pulls returned
    them. The session closes when :meth:`stop` is called or when a pull
    raises; in the latter case iteration ends and the exception is kept on
    :attr:`error`.

    Cancellation is cooperative: the thread checks for it before every pull,
    during idle waits and between handoff attempts. A pull that is already
    blocked in the service is allowed to finish; whatever it returns is
    dropped and, being unacknowledged, redelivered by the service later.

    Usage::

        with subscription.listen() as listener:
            for message in listener:
                handle(message)
                subscription.ack(message)
    """

    def __init__(
        self,
        pull: Callable[[], Optional[Message]],
        subscription: str,
        idle_interval: float = 0.5,
        handoff_timeout: float = 0.1,
        on_close: Optional[Callable[["Listener"], None]] = None,
    ):
        """
        Initialize a listener. Call :meth:`start` to begin pulling.

        Args:
            pull: Blocking pull returning one message or None when nothing arrived
            subscription: Subscription resource name, for logging
            idle_interval: Seconds to wait after an empty pull before pulling again
            handoff_timeout: Seconds between cancellation checks while waiting
                on the handoff queue
            on_close: Called once when the session closes, from whichever
                thread closed it
        """
        self.subscription = subscription
        self.error: Optional[BaseException] = None
        self._pull = pull
        self._idle_interval = idle_interval
        self._handoff_timeout = handoff_timeout
        self._on_close = on_close
        self._handoff: "queue.Queue[Message]" = queue.Queue(maxsize=1)
        self._cancelled = threading.Event()
        self._finished = threading.Event()
        self._lock = threading.Lock()
        self._stopped = False
        self._close_notified = False
        self._thread = threading.Thread(
            target=self._run,
            name=f"courier-listener:{subscription}",
            daemon=True,
        )

    def start(self) -> "Listener":
        logger.info("Listening on %s", self.subscription)
        self._thread.start()
        return self

    @property
    def state(self) -> ListenerState:
        if self._cancelled.is_set() or self._finished.is_set():
            return ListenerState.CLOSED
        return ListenerState.OPEN

    @property
    def closed(self) -> bool:
        return self.state is ListenerState.CLOSED

    def stop(self) -> None:
        """Cancel the session. Safe to call any number of times, from any thread."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        self._cancelled.set()
        logger.info("Stopped listening on %s", self.subscription)
        self._notify_closed()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the background thread; returns True once it has exited."""
        if self._thread.ident is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def __enter__(self) -> "Listener":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def __iter__(self) -> "Listener":
        return self

    def __next__(self) -> Message:
        while not self._cancelled.is_set():
            try:
                message = self._handoff.get(timeout=self._handoff_timeout)
            except queue.Empty:
                if self._finished.is_set() and self._handoff.empty():
                    break
                continue
            if self._cancelled.is_set():
                break
            return message
        raise StopIteration

    def _run(self) -> None:
        try:
            while not self._cancelled.is_set():
                message = self._pull()
                if message is None:
                    if self._idle_interval > 0:
                        self._cancelled.wait(self._idle_interval)
                    continue
                if not self._hand_off(message):
                    logger.debug("Dropped message %s from %s after stop", message.message_id, self.subscription)
                    break
        except PubSubError as exc:
            self.error = exc
            logger.warning("Listener on %s closed by pull error: %s", self.subscription, exc)
        except Exception as exc:
            self.error = exc
            logger.exception("Listener on %s failed", self.subscription)
        finally:
            self._finished.set()
            self._notify_closed()

    def _hand_off(self, message: Message) -> bool:
        # wait for the reader or for cancellation, whichever comes first
        while not self._cancelled.is_set():
            try:
                self._handoff.put(message, timeout=self._handoff_timeout)
                return True
            except queue.Full:
                continue
        return False

    def _notify_closed(self) -> None:
        with self._lock:
            if self._close_notified:
                return
            self._close_notified = True
        if self._on_close is not None:
            self._on_close(self)
