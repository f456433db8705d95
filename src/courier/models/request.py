"""Request models for pub-sub operations."""

from typing import Optional

from courier.models.base import CamelCaseModel
from courier.models.resource import PubsubMessage, PushConfig


class PublishRequest(CamelCaseModel):
    """Request for publishing one message to a topic."""

    topic: str
    message: PubsubMessage


class PullRequest(CamelCaseModel):
    """Request for pulling a message from a subscription."""

    subscription: str
    return_immediately: bool = False


class AcknowledgeRequest(CamelCaseModel):
    """Request for acknowledging messages."""

    subscription: str
    ack_id: list[str]


class ModifyAckDeadlineRequest(CamelCaseModel):
    """
    Request for changing a subscription's ack deadline.

    ``ack_deadline_seconds`` left as None is omitted from the wire body,
    which leaves the service's current deadline untouched.
    """

    subscription: str
    ack_deadline_seconds: Optional[int] = None


class ModifyPushConfigRequest(CamelCaseModel):
    """Request for changing or clearing a subscription's push endpoint."""

    subscription: str
    push_config: Optional[PushConfig] = None
