"""Client, Topic and Subscription handles."""

import logging
import threading
from typing import Mapping, Optional, Union

import requests

from courier import acks, codec, delivery
from courier.acks import Deadline
from courier.adapters.http import HttpPubSubService
from courier.config import ClientSettings
from courier.errors import AckScopeError, ListenerBusyError, NotFoundError, ValidationError
from courier.listener import Listener
from courier.message import Message
from courier.models.request import ModifyPushConfigRequest, PublishRequest
from courier.models.resource import PushConfig
from courier.models.resource import Subscription as SubscriptionResource
from courier.models.resource import Topic as TopicResource
from courier.names import full_subscription_name, full_topic_name
from courier.protocols.service import PubSubService

logger = logging.getLogger(__name__)


class Client:
    """
    Entry point: hands out Topic and Subscription handles for one project.

    Args:
        project: Project that owns the topics and subscriptions
        service: Service adapter every request goes through
        settings: Listener pacing; defaults apply when omitted
    """

    def __init__(self, project: str, service: PubSubService, settings: Optional[ClientSettings] = None):
        self.project = project
        self.service = service
        self.settings = settings if settings is not None else ClientSettings(project=project)

    @classmethod
    def over_http(
        cls,
        project: str,
        session: Optional[requests.Session] = None,
        auth: Optional[requests.auth.AuthBase] = None,
        settings: Optional[ClientSettings] = None,
    ) -> "Client":
        """
        Build a client on the JSON API.

        ``session`` (or ``auth``, set on a fresh session) signs the requests;
        courier never handles credentials itself.
        """
        if settings is None:
            settings = ClientSettings(project=project)
        if session is None:
            session = requests.Session()
        if auth is not None:
            session.auth = auth
        return cls(project, HttpPubSubService.from_settings(settings, session=session), settings=settings)

    @classmethod
    def from_settings(cls, settings: ClientSettings, session: Optional[requests.Session] = None) -> "Client":
        return cls.over_http(settings.project, session=session, settings=settings)

    def topic(self, name: str) -> "Topic":
        return Topic(self, name)

    def subscription(self, name: str) -> "Subscription":
        return Subscription(self, name)


class Topic:
    """A named publish target."""

    def __init__(self, client: Client, name: str):
        self.client = client
        self.name = name
        self.full_name = full_topic_name(client.project, name)

    def __repr__(self) -> str:
        return f"Topic({self.full_name!r})"

    def create(self) -> None:
        logger.debug("Creating topic %s", self.full_name)
        self.client.service.create_topic(TopicResource(name=self.full_name))

    def delete(self) -> None:
        logger.debug("Deleting topic %s", self.full_name)
        self.client.service.delete_topic(self.full_name)

    def exists(self) -> bool:
        try:
            self.client.service.get_topic(self.full_name)
        except NotFoundError:
            return False
        return True

    def publish(self, message: Union[Message, bytes, str], labels: Optional[Mapping[str, object]] = None) -> str:
        """
        Publish one message.

        Args:
            message: A Message, or the payload to wrap in one
            labels: Labels for a bare payload; a Message carries its own

        Returns:
            The message ID assigned by the service (may be empty)

        Raises:
            LabelTypeError: a label value is neither int nor str (no request is sent)
            ValidationError: labels were given with a Message, or the payload
                is not bytes or str (no request is sent)
            TransportError: the publish request failed
        """
        if isinstance(message, Message):
            if labels is not None:
                raise ValidationError("labels cannot be given with a Message; set Message.labels instead")
        else:
            message = Message(data=message, labels=labels or {})
        envelope = codec.encode(message.data, message.labels)
        response = self.client.service.publish(PublishRequest(topic=self.full_name, message=envelope))
        logger.debug("Published message %s to %s", response.message_id, self.full_name)
        return response.message_id


class Subscription:
    """
    A named, topic-bound source of messages.

    The handle owns the consumption state: at most one open
    :class:`~courier.listener.Listener` at a time.
    """

    def __init__(self, client: Client, name: str):
        self.client = client
        self.name = name
        self.full_name = full_subscription_name(client.project, name)
        self._lock = threading.Lock()
        self._listener: Optional[Listener] = None

    def __repr__(self) -> str:
        return f"Subscription({self.full_name!r})"

    def create(
        self,
        topic: Union[str, Topic],
        ack_deadline: Optional[Deadline] = None,
        push_endpoint: Optional[str] = None,
    ) -> None:
        """
        Create the subscription bound to ``topic``.

        A zero/negative/None ``ack_deadline`` leaves the service default; an
        empty ``push_endpoint`` makes a pull subscription.
        """
        topic_name = topic.full_name if isinstance(topic, Topic) else full_topic_name(self.client.project, topic)
        resource = SubscriptionResource(
            name=self.full_name,
            topic=topic_name,
            ack_deadline_seconds=acks.deadline_seconds(ack_deadline),
            push_config=PushConfig(push_endpoint=push_endpoint) if push_endpoint else None,
        )
        logger.debug("Creating subscription %s on %s", self.full_name, topic_name)
        self.client.service.create_subscription(resource)

    def delete(self) -> None:
        logger.debug("Deleting subscription %s", self.full_name)
        self.client.service.delete_subscription(self.full_name)

    def exists(self) -> bool:
        try:
            self.client.service.get_subscription(self.full_name)
        except NotFoundError:
            return False
        return True

    def modify_push_endpoint(self, endpoint: Optional[str]) -> None:
        """Point push delivery at ``endpoint``; an empty endpoint switches to pull."""
        self.client.service.modify_push_config(
            ModifyPushConfigRequest(
                subscription=self.full_name,
                push_config=PushConfig(push_endpoint=endpoint) if endpoint else None,
            )
        )

    def modify_ack_deadline(self, deadline: Optional[Deadline]) -> None:
        """
        Change the ack deadline for every outstanding delivery on this subscription.

        A zero or negative deadline is sent without a value, which leaves the
        service's deadline unchanged.
        """
        acks.modify_ack_deadline(self.client.service, self.full_name, deadline)

    def ack(self, *ack_ids: Union[str, Message]) -> None:
        """
        Acknowledge deliveries in one batched request.

        Accepts ack ids or pulled Messages. Acknowledging the same id twice
        succeeds.

        Raises:
            AckScopeError: a Message came from another subscription
            ValidationError: nothing to acknowledge
            TransportError: the request failed; no id in the batch is confirmed
        """
        ids = []
        for item in ack_ids:
            if isinstance(item, Message):
                if item.subscription is not None and item.subscription != self.full_name:
                    raise AckScopeError(f"message was delivered by {item.subscription}, not {self.full_name}")
                if not item.ack_id:
                    raise ValidationError("message has no ack id")
                ids.append(item.ack_id)
            else:
                ids.append(item)
        acks.acknowledge(self.client.service, self.full_name, ids)

    def pull(self, return_immediately: bool = True) -> Optional[Message]:
        """Pull one message; None when nothing is available."""
        return delivery.pull(self.client.service, self.full_name, return_immediately=return_immediately)

    def listen(self) -> Listener:
        """
        Start a listener that pulls continuously in a background thread.

        Raises:
            ListenerBusyError: this subscription already has an open listener
        """
        with self._lock:
            if self._listener is not None and not self._listener.closed:
                raise ListenerBusyError(f"{self.full_name} already has an open listener")
            listener = Listener(
                lambda: delivery.pull(self.client.service, self.full_name, return_immediately=False),
                self.full_name,
                idle_interval=self.client.settings.listen_idle_interval,
                handoff_timeout=self.client.settings.listen_handoff_timeout,
                on_close=self._listener_closed,
            )
            self._listener = listener
        return listener.start()

    def stop(self) -> None:
        """Stop the open listener, if any. Safe to call repeatedly."""
        with self._lock:
            listener = self._listener
        if listener is not None:
            listener.stop()

    def _listener_closed(self, listener: Listener) -> None:
        with self._lock:
            if self._listener is listener:
                self._listener = None
