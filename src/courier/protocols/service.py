"""Resource control protocol: the RPC surface courier drives."""

from typing import Protocol, runtime_checkable

from courier.models.request import (
    AcknowledgeRequest,
    ModifyAckDeadlineRequest,
    ModifyPushConfigRequest,
    PublishRequest,
    PullRequest,
)
from courier.models.resource import Subscription, Topic
from courier.models.response import PublishResponse, PullResponse


@runtime_checkable
class PubSubService(Protocol):
    """
    Synchronous protocol for the pub/sub service.

    Every method is one request/response round trip. Implementations raise
    :class:`~courier.errors.TransportError` (or a subclass) for transport
    and service failures and :class:`~courier.errors.NotFoundError` when
    the named resource does not exist.
    """

    def create_topic(self, topic: Topic) -> Topic:
        """Create a topic named by its full resource name."""
        ...

    def get_topic(self, name: str) -> Topic:
        """Fetch a topic; raises NotFoundError when absent."""
        ...

    def delete_topic(self, name: str) -> None:
        ...

    def publish(self, request: PublishRequest) -> PublishResponse:
        """
        Publish one message to a topic.

        Args:
            request: Topic resource name and encoded message

        Returns:
            PublishResponse with the service-assigned message ID
        """
        ...

    def create_subscription(self, subscription: Subscription) -> Subscription:
        """Create a subscription bound to ``subscription.topic``."""
        ...

    def get_subscription(self, name: str) -> Subscription:
        """Fetch a subscription; raises NotFoundError when absent."""
        ...

    def delete_subscription(self, name: str) -> None:
        ...

    def pull(self, request: PullRequest) -> PullResponse:
        """
        Pull at most one message from a subscription.

        Args:
            request: Subscription resource name and return_immediately flag

        Returns:
            PullResponse; ``response.message`` is None when nothing was available
        """
        ...

    def acknowledge(self, request: AcknowledgeRequest) -> None:
        """
        Acknowledge messages by their ack ids.

        Acknowledging an id that was already acknowledged succeeds.
        """
        ...

    def modify_ack_deadline(self, request: ModifyAckDeadlineRequest) -> None:
        """Change the ack deadline of the whole subscription."""
        ...

    def modify_push_config(self, request: ModifyPushConfigRequest) -> None:
        ...
