"""Delivery channel: a single pull against a subscription."""

import logging
from typing import Optional

from courier import codec
from courier.message import Message
from courier.models.request import PullRequest
from courier.protocols.service import PubSubService

logger = logging.getLogger(__name__)


def pull(service: PubSubService, subscription: str, return_immediately: bool = True) -> Optional[Message]:
    """
    Pull at most one message from a subscription.

    Args:
        service: Service adapter to call
        subscription: Full subscription resource name
        return_immediately: When False the service may wait for a message

    Returns:
        The decoded message with its ack id, or None when nothing was available

    Raises:
        TransportError: the pull request failed
        DecodeError: the returned envelope is malformed
    """
    response = service.pull(PullRequest(subscription=subscription, return_immediately=return_immediately))

    envelope = response.message
    if envelope is None:
        logger.debug("No message available on %s", subscription)
        return None

    data, labels = codec.decode(envelope)
    message = Message(
        data=data,
        labels=labels,
        ack_id=response.ack_id,
        message_id=envelope.message_id,
        subscription=subscription,
    )
    logger.debug("Pulled message %s from %s", message.message_id, subscription)
    return message
