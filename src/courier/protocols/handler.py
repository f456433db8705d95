"""Message handler protocol definitions."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MessageHandler(Protocol):
    """
    Synchronous protocol for message handlers.

    Handlers receive validated request objects and are responsible for:
    - Processing the request synchronously
    - Publishing results (via their own topic handle)
    - Handling all errors internally
    """

    def handle(self, request: Any) -> None:
        """
        Process a validated request.

        Args:
            request: Validated request object (type depends on handler)

        Note:
            If handler raises an exception, the message is not acked and
            the service redelivers it after the ack deadline.
        """
        ...
