"""Response models for pub-sub operations."""

from typing import Optional

from courier.models.base import CamelCaseModel
from courier.models.resource import PubsubMessage


class PublishResponse(CamelCaseModel):
    """Publish result; ``message_id`` is empty when the service does not report one."""

    message_id: str = ""


class PubsubEvent(CamelCaseModel):
    """One delivery event on a subscription."""

    subscription: Optional[str] = None
    message: Optional[PubsubMessage] = None
    truncated: bool = False
    deleted: bool = False


class PullResponse(CamelCaseModel):
    """
    Pull response container.

    A response without ``pubsub_event.message`` means no message was
    available.
    """

    ack_id: Optional[str] = None
    pubsub_event: Optional[PubsubEvent] = None

    @property
    def message(self) -> Optional[PubsubMessage]:
        if self.pubsub_event is None:
            return None
        return self.pubsub_event.message
