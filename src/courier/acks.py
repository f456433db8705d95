"""Acknowledgement manager: ack ids and subscription ack deadlines."""

import logging
import math
from datetime import timedelta
from typing import Iterable, Optional, Union

from courier.errors import ValidationError
from courier.models.request import AcknowledgeRequest, ModifyAckDeadlineRequest
from courier.protocols.service import PubSubService

logger = logging.getLogger(__name__)

Deadline = Union[timedelta, int, float]


def deadline_seconds(deadline: Optional[Deadline]) -> Optional[int]:
    """
    Convert a deadline to whole seconds for the wire.

    Zero, negative and None mean "leave the service default" and give None;
    positive fractions round up so a short deadline never becomes zero.
    """
    if deadline is None:
        return None
    if isinstance(deadline, timedelta):
        seconds = deadline.total_seconds()
    elif isinstance(deadline, (int, float)) and not isinstance(deadline, bool):
        seconds = float(deadline)
    else:
        raise ValidationError(f"deadline must be a timedelta or seconds, got {type(deadline).__name__}")
    if seconds <= 0:
        return None
    return math.ceil(seconds)


def acknowledge(service: PubSubService, subscription: str, ack_ids: Iterable[str]) -> None:
    """
    Acknowledge a batch of deliveries in one request.

    A failure is reported once for the whole batch. Ack ids that were
    already acknowledged are accepted.

    Raises:
        ValidationError: no ack ids were given
        TransportError: the request failed
    """
    if isinstance(ack_ids, str):
        ack_ids = [ack_ids]
    unique_ids = list(dict.fromkeys(ack_ids))
    if not unique_ids:
        raise ValidationError("at least one ack id is required")

    logger.debug("Acknowledging %d message(s) on %s", len(unique_ids), subscription)
    service.acknowledge(AcknowledgeRequest(subscription=subscription, ack_id=unique_ids))


def modify_ack_deadline(service: PubSubService, subscription: str, deadline: Optional[Deadline]) -> None:
    """
    Change the ack deadline for every outstanding delivery on a subscription.

    A zero or negative deadline sends the request without a deadline field.
    """
    seconds = deadline_seconds(deadline)
    logger.debug("Modifying ack deadline on %s to %s", subscription, seconds)
    service.modify_ack_deadline(ModifyAckDeadlineRequest(subscription=subscription, ack_deadline_seconds=seconds))
