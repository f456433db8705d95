"""Shared fixtures: an in-memory PubSubService and a client bound to it."""

import itertools
import threading
from collections import deque

import pytest

from courier import Client, ClientSettings
from courier.errors import NotFoundError
from courier.models.request import (
    AcknowledgeRequest,
    ModifyAckDeadlineRequest,
    ModifyPushConfigRequest,
    PublishRequest,
    PullRequest,
)
from courier.models.resource import Subscription, Topic
from courier.models.response import PublishResponse, PubsubEvent, PullResponse


class InMemoryService:
    """Fan-out broker kept in dicts; records every request it receives."""

    def __init__(self):
        self.topics: dict[str, Topic] = {}
        self.subscriptions: dict[str, Subscription] = {}
        self.queues: dict[str, deque] = {}
        self.outstanding: dict[str, str] = {}
        self.requests: list = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create_topic(self, topic):
        self.requests.append(topic)
        self.topics[topic.name] = topic
        return topic

    def get_topic(self, name):
        if name not in self.topics:
            raise NotFoundError(f"{name} not found", status_code=404)
        return self.topics[name]

    def delete_topic(self, name):
        self.get_topic(name)
        del self.topics[name]

    def publish(self, request: PublishRequest):
        self.requests.append(request)
        self.get_topic(request.topic)
        message_id = str(next(self._ids))
        envelope = request.message.model_copy(update={"message_id": message_id})
        with self._lock:
            for sub in self.subscriptions.values():
                if sub.topic == request.topic:
                    self.queues[sub.name].append(envelope)
        return PublishResponse(message_id=message_id)

    def create_subscription(self, subscription):
        self.requests.append(subscription)
        self.subscriptions[subscription.name] = subscription
        self.queues[subscription.name] = deque()
        return subscription

    def get_subscription(self, name):
        if name not in self.subscriptions:
            raise NotFoundError(f"{name} not found", status_code=404)
        return self.subscriptions[name]

    def delete_subscription(self, name):
        self.get_subscription(name)
        del self.subscriptions[name]
        del self.queues[name]

    def pull(self, request: PullRequest):
        self.get_subscription(request.subscription)
        with self._lock:
            queue = self.queues[request.subscription]
            if not queue:
                return PullResponse()
            envelope = queue.popleft()
            ack_id = f"ack-{next(self._ids)}"
            self.outstanding[ack_id] = request.subscription
        return PullResponse(ack_id=ack_id, pubsub_event=PubsubEvent(message=envelope))

    def acknowledge(self, request: AcknowledgeRequest):
        self.requests.append(request)
        for ack_id in request.ack_id:
            self.outstanding.pop(ack_id, None)

    def modify_ack_deadline(self, request: ModifyAckDeadlineRequest):
        self.requests.append(request)

    def modify_push_config(self, request: ModifyPushConfigRequest):
        self.requests.append(request)


@pytest.fixture
def service():
    """Create an in-memory service."""
    return InMemoryService()


@pytest.fixture
def client(service):
    """Create a client on the in-memory service with fast listener pacing."""
    settings = ClientSettings(project="proj", listen_idle_interval=0.01, listen_handoff_timeout=0.01)
    return Client("proj", service, settings=settings)
