"""Generic message consumer for a subscription."""

import logging
import threading
from typing import Optional, Type

from pydantic import BaseModel

from courier.client import Subscription
from courier.listener import Listener
from courier.message import Message
from courier.protocols.handler import MessageHandler

logger = logging.getLogger(__name__)


class MessageConsumer:
    """
    Generic message consumer for a subscription.

    Responsibilities:
    - Receive messages from the subscription
    - Parse and validate JSON (using Pydantic)
    - Route to handler
    - Acknowledge messages

    The handler is responsible for:
    - Domain processing logic
    - Publishing results
    - Error handling
    """

    def __init__(
        self,
        subscription: Subscription,
        handler: MessageHandler,
        request_model: Type[BaseModel],
    ):
        """
        Initialize message consumer.

        Args:
            subscription: Subscription handle to consume from
            handler: Message handler implementing MessageHandler protocol
            request_model: Pydantic model for validating message payloads
        """
        self.subscription = subscription
        self.handler = handler
        self.request_model = request_model
        self._running = False
        self._listener: Optional[Listener] = None
        self._lock = threading.Lock()

    def start(self) -> None:
        """Start the message consumer."""
        self._running = True

    def stop(self) -> None:
        """Stop the message consumer and its listener."""
        with self._lock:
            self._running = False
            listener = self._listener
        if listener is not None:
            listener.stop()

    def process_one_message(self) -> bool:
        """
        Pull and process a single message without waiting.

        Returns:
            True when a message was processed, False when none was available
        """
        message = self.subscription.pull(return_immediately=True)
        if message is None:
            return False
        self._process(message)
        return True

    def run(self) -> None:
        """
        Run the consumer loop on a listener.

        Call start() before run(), and stop() to exit the loop. A payload
        that fails validation, or a handler error, propagates and stops the
        loop; that message stays unacknowledged and will be redelivered.
        The error that closed the listener, if any, is re-raised.
        """
        if not self._running:
            return

        listener = self.subscription.listen()
        with self._lock:
            self._listener = listener
            stopped = not self._running
        if stopped:
            # stop() landed while the listener was starting
            listener.stop()

        with listener:
            for message in listener:
                self._process(message)
                if not self._running:
                    break
        if listener.error is not None:
            raise listener.error

    def _process(self, message: Message) -> None:
        # Validate message
        request = self.request_model.model_validate_json(message.data)

        # Route to handler
        self.handler.handle(request)

        # Acknowledge message
        self.subscription.ack(message)
        logger.debug("Processed message %s", message.message_id)
