"""RabbitMQ adapter for the courier service protocol."""

from courier.adapters.rabbitmq.publisher import RabbitMQPublisher
from courier.adapters.rabbitmq.service import RabbitMQPubSubService
from courier.adapters.rabbitmq.subscriber import RabbitMQSubscriber

__all__ = ["RabbitMQPubSubService", "RabbitMQPublisher", "RabbitMQSubscriber"]
