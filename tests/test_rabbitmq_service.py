"""Tests for the RabbitMQ service adapter against a mocked pika connection."""

import threading
from unittest.mock import Mock, patch

import pika
import pika.exceptions
import pytest

from courier.adapters.rabbitmq import RabbitMQPubSubService
from courier.errors import DecodeError, NotFoundError, TransportError, UnsupportedOperationError
from courier.models.request import (
    AcknowledgeRequest,
    ModifyAckDeadlineRequest,
    ModifyPushConfigRequest,
    PublishRequest,
    PullRequest,
)
from courier.models.resource import Label, PubsubMessage, PushConfig, Subscription, Topic

TOPIC = "/topics/p/t"
SUBSCRIPTION = "/subscriptions/p/s"


def delivery(tag, body, message_id="m-1"):
    """Build a basic_get result tuple."""
    return Mock(delivery_tag=tag), pika.BasicProperties(message_id=message_id), body


class TestRabbitMQPubSubService:
    """Test RabbitMQPubSubService."""

    @pytest.fixture
    def mock_channel(self):
        """Create a mock channel."""
        channel = Mock()
        channel.is_closed = False
        channel.basic_get.return_value = (None, None, None)
        return channel

    @pytest.fixture
    def mock_connection(self, mock_channel):
        """Create a mock connection handing out the mock channel."""
        connection = Mock()
        connection.channel.return_value = mock_channel
        return connection

    @pytest.fixture
    def service(self, mock_connection):
        """Create a RabbitMQPubSubService instance."""
        return RabbitMQPubSubService(mock_connection)

    @pytest.fixture
    def subscribed(self, service):
        """Service with one subscription bound to the topic."""
        service.create_subscription(Subscription(name=SUBSCRIPTION, topic=TOPIC, ack_deadline_seconds=30))
        return service

    def test_channel_opened_with_confirms(self, service, mock_connection, mock_channel):
        service.create_topic(Topic(name=TOPIC))

        mock_connection.channel.assert_called_once()
        mock_channel.confirm_delivery.assert_called_once()

    def test_create_topic_declares_fanout_exchange(self, service, mock_channel):
        assert service.create_topic(Topic(name=TOPIC)) == Topic(name=TOPIC)

        mock_channel.exchange_declare.assert_called_once_with(exchange=TOPIC, exchange_type="fanout", durable=True)

    def test_missing_topic_is_not_found(self, service, mock_channel):
        mock_channel.exchange_declare.side_effect = pika.exceptions.ChannelClosedByBroker(404, "NOT_FOUND")

        with pytest.raises(NotFoundError):
            service.get_topic(TOPIC)

    def test_channel_reopened_after_broker_close(self, service, mock_connection, mock_channel):
        mock_channel.exchange_declare.side_effect = [pika.exceptions.ChannelClosedByBroker(404, "NOT_FOUND"), None]

        with pytest.raises(NotFoundError):
            service.get_topic(TOPIC)
        service.get_topic(TOPIC)

        assert mock_connection.channel.call_count == 2

    def test_connection_failure_is_transport_error(self, service, mock_connection):
        mock_connection.channel.side_effect = pika.exceptions.AMQPConnectionError("down")

        with pytest.raises(TransportError):
            service.delete_topic(TOPIC)

    def test_publish_sends_json_envelope(self, service, mock_channel):
        envelope = PubsubMessage(data="aGk=", label=[Label(key="retry", num_value=3)])

        with patch("courier.adapters.rabbitmq.publisher.uuid.uuid4") as uuid4:
            uuid4.return_value.hex = "abc"
            response = service.publish(PublishRequest(topic=TOPIC, message=envelope))

        assert response.message_id == "abc"
        kwargs = mock_channel.basic_publish.call_args[1]
        assert kwargs["exchange"] == TOPIC
        assert kwargs["routing_key"] == ""
        assert kwargs["properties"].message_id == "abc"
        assert kwargs["properties"].delivery_mode == 2
        sent = PubsubMessage.model_validate_json(kwargs["body"])
        assert sent == envelope.model_copy(update={"message_id": "abc"})

    def test_create_subscription_binds_queue(self, service, mock_channel):
        created = service.create_subscription(Subscription(name=SUBSCRIPTION, topic=TOPIC))

        mock_channel.exchange_declare.assert_called_once_with(exchange=TOPIC, passive=True)
        mock_channel.queue_declare.assert_called_once_with(queue=SUBSCRIPTION, durable=True)
        mock_channel.queue_bind.assert_called_once_with(queue=SUBSCRIPTION, exchange=TOPIC)
        assert created.ack_deadline_seconds == 10
        assert created.topic == TOPIC

    def test_push_subscription_unsupported(self, service, mock_channel):
        with pytest.raises(UnsupportedOperationError):
            service.create_subscription(
                Subscription(name=SUBSCRIPTION, topic=TOPIC, push_config=PushConfig(push_endpoint="https://x"))
            )

        mock_channel.queue_declare.assert_not_called()

    def test_modify_push_config(self, subscribed):
        subscribed.modify_push_config(ModifyPushConfigRequest(subscription=SUBSCRIPTION))

        with pytest.raises(UnsupportedOperationError):
            subscribed.modify_push_config(
                ModifyPushConfigRequest(subscription=SUBSCRIPTION, push_config=PushConfig(push_endpoint="https://x"))
            )

    def test_pull_empty_queue(self, subscribed, mock_channel):
        response = subscribed.pull(PullRequest(subscription=SUBSCRIPTION))

        mock_channel.basic_get.assert_called_once_with(queue=SUBSCRIPTION, auto_ack=False)
        assert response.message is None

    def test_pull_and_ack(self, subscribed, mock_channel):
        body = PubsubMessage(data="aGk=").model_dump_json(by_alias=True)
        mock_channel.basic_get.return_value = delivery(7, body.encode())

        response = subscribed.pull(PullRequest(subscription=SUBSCRIPTION))

        assert response.message.data == "aGk="
        assert response.message.message_id == "m-1"

        subscribed.acknowledge(AcknowledgeRequest(subscription=SUBSCRIPTION, ack_id=[response.ack_id]))
        subscribed.acknowledge(AcknowledgeRequest(subscription=SUBSCRIPTION, ack_id=[response.ack_id]))

        mock_channel.basic_ack.assert_called_once_with(delivery_tag=7)

    def test_ack_with_foreign_subscription_is_ignored(self, subscribed, mock_channel):
        mock_channel.basic_get.return_value = delivery(7, b'{"data": ""}')
        response = subscribed.pull(PullRequest(subscription=SUBSCRIPTION))

        subscribed.acknowledge(AcknowledgeRequest(subscription="/subscriptions/p/other", ack_id=[response.ack_id]))

        mock_channel.basic_ack.assert_not_called()

    def test_invalid_body_is_decode_error(self, subscribed, mock_channel):
        mock_channel.basic_get.return_value = delivery(3, b"not json")

        with pytest.raises(DecodeError):
            subscribed.pull(PullRequest(subscription=SUBSCRIPTION))

    def test_expired_delivery_requeued_on_next_pull(self, subscribed, mock_channel):
        mock_channel.basic_get.return_value = delivery(5, b'{"data": ""}')

        with patch("courier.adapters.rabbitmq.subscriber.time.monotonic", return_value=100.0):
            subscribed.pull(PullRequest(subscription=SUBSCRIPTION))

        mock_channel.basic_get.return_value = (None, None, None)
        with patch("courier.adapters.rabbitmq.subscriber.time.monotonic", return_value=120.0):
            subscribed.pull(PullRequest(subscription=SUBSCRIPTION))
        mock_channel.basic_nack.assert_not_called()

        with patch("courier.adapters.rabbitmq.subscriber.time.monotonic", return_value=130.0):
            subscribed.pull(PullRequest(subscription=SUBSCRIPTION))
        mock_channel.basic_nack.assert_called_once_with(delivery_tag=5, requeue=True)

    def test_modify_ack_deadline_applies_to_outstanding(self, subscribed, mock_channel):
        mock_channel.basic_get.return_value = delivery(5, b'{"data": ""}')
        with patch("courier.adapters.rabbitmq.subscriber.time.monotonic", return_value=100.0):
            subscribed.pull(PullRequest(subscription=SUBSCRIPTION))

        subscribed.modify_ack_deadline(ModifyAckDeadlineRequest(subscription=SUBSCRIPTION, ack_deadline_seconds=5))
        subscribed.modify_ack_deadline(ModifyAckDeadlineRequest(subscription=SUBSCRIPTION))

        mock_channel.basic_get.return_value = (None, None, None)
        with patch("courier.adapters.rabbitmq.subscriber.time.monotonic", return_value=106.0):
            subscribed.pull(PullRequest(subscription=SUBSCRIPTION))

        mock_channel.basic_nack.assert_called_once_with(delivery_tag=5, requeue=True)
        assert subscribed.get_subscription(SUBSCRIPTION).ack_deadline_seconds == 5

    def test_ack_after_channel_replaced_is_noop(self, subscribed, mock_connection, mock_channel):
        mock_channel.basic_get.return_value = delivery(9, b'{"data": ""}')
        response = subscribed.pull(PullRequest(subscription=SUBSCRIPTION))

        mock_channel.is_closed = True
        fresh_channel = Mock(is_closed=False)
        mock_connection.channel.return_value = fresh_channel
        subscribed.acknowledge(AcknowledgeRequest(subscription=SUBSCRIPTION, ack_id=[response.ack_id]))

        fresh_channel.basic_ack.assert_not_called()
        mock_channel.basic_ack.assert_not_called()

    def test_missing_queue_is_not_found(self, subscribed, mock_channel):
        mock_channel.basic_get.side_effect = pika.exceptions.ChannelClosedByBroker(404, "NOT_FOUND - no queue")

        with pytest.raises(NotFoundError):
            subscribed.pull(PullRequest(subscription=SUBSCRIPTION))

    def test_delete_subscription(self, subscribed, mock_channel):
        subscribed.delete_subscription(SUBSCRIPTION)

        mock_channel.queue_delete.assert_called_once_with(queue=SUBSCRIPTION)

    def test_delete_subscription_drops_outstanding_deliveries(self, subscribed, mock_channel):
        """Acking a delivery of a deleted subscription is a no-op."""
        mock_channel.basic_get.return_value = delivery(4, b'{"data": ""}')
        response = subscribed.pull(PullRequest(subscription=SUBSCRIPTION))

        subscribed.delete_subscription(SUBSCRIPTION)
        subscribed.acknowledge(AcknowledgeRequest(subscription=SUBSCRIPTION, ack_id=[response.ack_id]))

        mock_channel.basic_ack.assert_not_called()

    def test_delete_subscription_waits_for_channel_lock(self, subscribed, mock_channel):
        """Subscription state only changes while the shared channel is held."""
        mock_channel.basic_get.return_value = delivery(4, b'{"data": ""}')
        response = subscribed.pull(PullRequest(subscription=SUBSCRIPTION))
        lock = subscribed.subscriber._channel.lock

        worker = threading.Thread(target=subscribed.delete_subscription, args=(SUBSCRIPTION,))
        with lock:
            worker.start()
            worker.join(timeout=0.1)
            assert worker.is_alive()
            assert response.ack_id in subscribed.subscriber._pending
            assert subscribed.get_subscription(SUBSCRIPTION).ack_deadline_seconds == 30
        worker.join(timeout=2)

        assert not worker.is_alive()
        assert response.ack_id not in subscribed.subscriber._pending
        assert subscribed.get_subscription(SUBSCRIPTION).topic is None

    def test_failed_bind_records_nothing(self, service, mock_channel):
        """A subscription the broker refused keeps no deadline or topic."""
        mock_channel.queue_bind.side_effect = pika.exceptions.ChannelClosedByBroker(404, "NOT_FOUND")

        with pytest.raises(NotFoundError):
            service.create_subscription(Subscription(name=SUBSCRIPTION, topic=TOPIC, ack_deadline_seconds=30))

        mock_channel.queue_bind.side_effect = None
        described = service.get_subscription(SUBSCRIPTION)
        assert described.topic is None
        assert described.ack_deadline_seconds == 10
