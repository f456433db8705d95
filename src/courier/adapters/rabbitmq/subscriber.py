"""RabbitMQ subscriber: subscriptions as queues bound to a topic exchange."""

import logging
import time
from dataclasses import dataclass

import pydantic
from pika.adapters.blocking_connection import BlockingChannel

from courier.adapters.rabbitmq.channel import SharedChannel
from courier.errors import DecodeError, UnsupportedOperationError, ValidationError
from courier.models.request import (
    AcknowledgeRequest,
    ModifyAckDeadlineRequest,
    ModifyPushConfigRequest,
    PullRequest,
)
from courier.models.resource import PubsubMessage, Subscription
from courier.models.response import PubsubEvent, PullResponse

logger = logging.getLogger(__name__)

DEFAULT_ACK_DEADLINE_SECONDS = 10


@dataclass
class _Delivery:
    delivery_tag: int
    subscription: str
    generation: int
    delivered_at: float


class RabbitMQSubscriber:
    """
    Subscription half of the RabbitMQ service adapter.

    Maps delivery_tag to ack_id for acknowledge() calls. RabbitMQ has no
    ack deadline of its own, so each pull first nacks (requeues) the
    deliveries of that subscription that have been outstanding longer than
    its deadline; the broker then redelivers them.

    Deadlines and topic bindings are tracked by this adapter instance only.
    """

    def __init__(self, channel: SharedChannel):
        self._channel = channel
        # Map ack_id (str) -> outstanding delivery
        self._pending: dict[str, _Delivery] = {}
        self._ack_deadlines: dict[str, int] = {}
        self._topics: dict[str, str] = {}

    def create_subscription(self, subscription: Subscription) -> Subscription:
        if subscription.push_config is not None and subscription.push_config.push_endpoint:
            raise UnsupportedOperationError("RabbitMQ subscriptions are pull only")
        if not subscription.topic:
            raise ValidationError("a subscription must be bound to a topic")

        with self._channel.use(subscription.name) as channel:
            channel.exchange_declare(exchange=subscription.topic, passive=True)
            channel.queue_declare(queue=subscription.name, durable=True)
            channel.queue_bind(queue=subscription.name, exchange=subscription.topic)
            self._topics[subscription.name] = subscription.topic
            self._ack_deadlines[subscription.name] = subscription.ack_deadline_seconds or DEFAULT_ACK_DEADLINE_SECONDS
        logger.debug("Bound queue %s to %s", subscription.name, subscription.topic)
        return self._describe(subscription.name)

    def get_subscription(self, name: str) -> Subscription:
        with self._channel.use(name) as channel:
            channel.queue_declare(queue=name, passive=True)
        return self._describe(name)

    def delete_subscription(self, name: str) -> None:
        with self._channel.use(name) as channel:
            channel.queue_delete(queue=name)
            self._topics.pop(name, None)
            self._ack_deadlines.pop(name, None)
            for ack_id in [ack_id for ack_id, d in self._pending.items() if d.subscription == name]:
                del self._pending[ack_id]

    def pull(self, request: PullRequest) -> PullResponse:
        """
        Get one message from the subscription's queue.

        basic_get never waits, so ``return_immediately`` has no effect here;
        the listener's idle interval paces repeated empty pulls.
        """
        name = request.subscription
        with self._channel.use(name) as channel:
            self._requeue_expired(channel, name)
            method, properties, body = channel.basic_get(queue=name, auto_ack=False)
            if method is None:
                return PullResponse()

            ack_id = f"{self._channel.generation}.{method.delivery_tag}"
            self._pending[ack_id] = _Delivery(
                delivery_tag=method.delivery_tag,
                subscription=name,
                generation=self._channel.generation,
                delivered_at=time.monotonic(),
            )

        try:
            envelope = PubsubMessage.model_validate_json(body)
        except pydantic.ValidationError as exc:
            raise DecodeError(f"message on {name} is not a valid envelope: {exc}") from exc
        if properties is not None and properties.message_id:
            envelope.message_id = properties.message_id

        return PullResponse(
            ack_id=ack_id,
            pubsub_event=PubsubEvent(subscription=name, message=envelope),
        )

    def acknowledge(self, request: AcknowledgeRequest) -> None:
        """
        Acknowledge messages by their ack_ids.

        Unknown ids, ids already acknowledged and ids from a channel that has
        since been replaced are accepted without effect.
        """
        with self._channel.use(request.subscription) as channel:
            for ack_id in request.ack_id:
                delivery = self._pending.get(ack_id)
                if delivery is None or delivery.subscription != request.subscription:
                    continue
                del self._pending[ack_id]
                if delivery.generation == self._channel.generation:
                    channel.basic_ack(delivery_tag=delivery.delivery_tag)

    def modify_ack_deadline(self, request: ModifyAckDeadlineRequest) -> None:
        if request.ack_deadline_seconds is None:
            return
        with self._channel.lock:
            self._ack_deadlines[request.subscription] = request.ack_deadline_seconds

    def modify_push_config(self, request: ModifyPushConfigRequest) -> None:
        if request.push_config is not None and request.push_config.push_endpoint:
            raise UnsupportedOperationError("RabbitMQ subscriptions are pull only")

    def _describe(self, name: str) -> Subscription:
        return Subscription(
            name=name,
            topic=self._topics.get(name),
            ack_deadline_seconds=self._ack_deadlines.get(name, DEFAULT_ACK_DEADLINE_SECONDS),
        )

    def _requeue_expired(self, channel: BlockingChannel, name: str) -> None:
        deadline = self._ack_deadlines.get(name, DEFAULT_ACK_DEADLINE_SECONDS)
        now = time.monotonic()
        for ack_id, delivery in list(self._pending.items()):
            if delivery.subscription != name:
                continue
            if delivery.generation != self._channel.generation:
                # the broker already requeued everything on the old channel
                del self._pending[ack_id]
            elif now - delivery.delivered_at >= deadline:
                channel.basic_nack(delivery_tag=delivery.delivery_tag, requeue=True)
                del self._pending[ack_id]
                logger.debug("Ack deadline expired for %s on %s", ack_id, name)
