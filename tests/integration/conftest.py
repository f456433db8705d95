"""Fixtures for RabbitMQ integration tests."""

import subprocess
import time
import uuid

import pika
import pytest

from courier import Client, ClientSettings
from courier.adapters.rabbitmq import RabbitMQPubSubService

RABBITMQ_PORT = 5673  # Non-default port to avoid conflicts


@pytest.fixture(scope="session")
def rabbitmq_container():
    """Start RabbitMQ Docker container for test session."""
    container_name = "courier-rabbitmq-test"

    # Clean up any existing container
    subprocess.run(["docker", "rm", "-f", container_name], capture_output=True)

    # Start RabbitMQ
    subprocess.run(
        [
            "docker",
            "run",
            "-d",
            "--name",
            container_name,
            "-p",
            f"{RABBITMQ_PORT}:5672",
            "rabbitmq:3-management",
        ],
        check=True,
        capture_output=True,
    )

    # Wait for RabbitMQ to be ready
    time.sleep(10)

    yield

    # Cleanup
    subprocess.run(["docker", "stop", container_name], capture_output=True)
    subprocess.run(["docker", "rm", container_name], capture_output=True)


@pytest.fixture
def rabbitmq_connection(rabbitmq_container) -> pika.BlockingConnection:
    """Provide a RabbitMQ connection per test."""
    connection = pika.BlockingConnection(pika.ConnectionParameters(host="localhost", port=RABBITMQ_PORT))
    yield connection
    connection.close()


@pytest.fixture
def client(rabbitmq_connection) -> Client:
    """Client on the RabbitMQ adapter with a unique project per test."""
    project = f"it-{uuid.uuid4().hex[:8]}"
    settings = ClientSettings(project=project, listen_idle_interval=0.05, listen_handoff_timeout=0.05)
    return Client(project, RabbitMQPubSubService(rabbitmq_connection), settings=settings)


@pytest.fixture
def topic(client):
    """Create a topic and clean up after test."""
    topic = client.topic("orders")
    topic.create()

    yield topic

    # Cleanup
    topic.delete()


@pytest.fixture
def subscription(client, topic):
    """Create a subscription on the topic and clean up after test."""
    subscription = client.subscription("workers")
    subscription.create(topic, ack_deadline=2)

    yield subscription

    # Cleanup
    subscription.stop()
    subscription.delete()
