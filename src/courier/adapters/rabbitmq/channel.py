"""Shared pika channel with error translation."""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

import pika
import pika.exceptions
from pika.adapters.blocking_connection import BlockingChannel

from courier.errors import NotFoundError, ServiceError, TransportError


class SharedChannel:
    """
    One publisher-confirm channel shared by the publisher and subscriber.

    pika's blocking channel is not thread-safe, and a listener thread pulls
    while the caller acks, so every use holds :attr:`lock`. A channel the
    broker closed is replaced on next use; :attr:`generation` counts the
    replacements so delivery tags from a dead channel can be recognised.
    """

    def __init__(self, connection: pika.BlockingConnection):
        self._connection = connection
        self._channel: Optional[BlockingChannel] = None
        self.lock = threading.RLock()
        self.generation = 0

    @contextmanager
    def use(self, resource: str) -> Iterator[BlockingChannel]:
        """
        Yield the open channel, translating pika errors for ``resource``.

        Raises:
            NotFoundError: the broker reported the exchange or queue missing
            ServiceError: the broker closed the channel for another reason
            TransportError: connection-level failure
        """
        with self.lock:
            try:
                yield self._open()
            except pika.exceptions.ChannelClosedByBroker as exc:
                self._discard()
                if exc.reply_code == 404:
                    raise NotFoundError(f"{resource} not found: {exc.reply_text}", status_code=404) from exc
                raise ServiceError(f"{resource}: {exc.reply_text}", status_code=exc.reply_code) from exc
            except pika.exceptions.AMQPError as exc:
                self._discard()
                raise TransportError(f"{resource}: {exc!r}") from exc

    def _open(self) -> BlockingChannel:
        if self._channel is None or self._channel.is_closed:
            if self._channel is not None:
                self.generation += 1
            self._channel = self._connection.channel()
            self._channel.confirm_delivery()
        return self._channel

    def _discard(self) -> None:
        self._channel = None
        self.generation += 1
