"""RabbitMQ publisher: topics as fanout exchanges."""

import logging
import uuid

import pika

from courier.adapters.rabbitmq.channel import SharedChannel
from courier.models.request import PublishRequest
from courier.models.resource import Topic
from courier.models.response import PublishResponse

logger = logging.getLogger(__name__)


class RabbitMQPublisher:
    """
    Topic half of the RabbitMQ service adapter.

    Each topic is a durable fanout exchange named by the topic's full
    resource name; every subscription queue bound to it gets a copy.
    """

    def __init__(self, channel: SharedChannel):
        self._channel = channel

    def create_topic(self, topic: Topic) -> Topic:
        with self._channel.use(topic.name) as channel:
            channel.exchange_declare(exchange=topic.name, exchange_type="fanout", durable=True)
        logger.debug("Declared exchange %s", topic.name)
        return Topic(name=topic.name)

    def get_topic(self, name: str) -> Topic:
        with self._channel.use(name) as channel:
            channel.exchange_declare(exchange=name, passive=True)
        return Topic(name=name)

    def delete_topic(self, name: str) -> None:
        with self._channel.use(name) as channel:
            channel.exchange_delete(exchange=name)

    def publish(self, request: PublishRequest) -> PublishResponse:
        """
        Publish the encoded envelope to the topic's exchange.

        The envelope travels as its JSON wire form so labels survive the
        broker unchanged.
        """
        message_id = uuid.uuid4().hex
        envelope = request.message.model_copy(update={"message_id": message_id})

        with self._channel.use(request.topic) as channel:
            channel.basic_publish(
                exchange=request.topic,
                routing_key="",
                body=envelope.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8"),
                properties=pika.BasicProperties(
                    content_type="application/json",
                    delivery_mode=2,  # Persistent
                    message_id=message_id,
                ),
            )
        logger.debug("Published %s to %s", message_id, request.topic)
        return PublishResponse(message_id=message_id)
