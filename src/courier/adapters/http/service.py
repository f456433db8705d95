"""JSON/REST service adapter implementing the PubSubService protocol."""

import logging
from contextlib import suppress
from typing import Any, Optional, Type, TypeVar
from urllib.parse import quote

import pydantic
import requests

from courier.config import DEFAULT_API_ROOT, DEFAULT_USER_AGENT, ClientSettings
from courier.errors import DecodeError, NotFoundError, ServiceError, TransportError
from courier.models.base import CamelCaseModel
from courier.models.error import ErrorResponse
from courier.models.request import (
    AcknowledgeRequest,
    ModifyAckDeadlineRequest,
    ModifyPushConfigRequest,
    PublishRequest,
    PullRequest,
)
from courier.models.resource import Subscription, Topic
from courier.models.response import PublishResponse, PullResponse

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=CamelCaseModel)


class HttpPubSubService:
    """
    PubSubService over the service's JSON API.

    Authentication is the session's business: pass a ``requests.Session``
    that already signs requests (for example one carrying an OAuth2 ``auth``
    handler for :data:`courier.SCOPE_PUBSUB`).
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        api_root: str = DEFAULT_API_ROOT,
        timeout: Optional[float] = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self._session = session if session is not None else requests.Session()
        self._api_root = api_root.rstrip("/")
        self._timeout = timeout
        self._user_agent = user_agent

    @classmethod
    def from_settings(cls, settings: ClientSettings, session: Optional[requests.Session] = None) -> "HttpPubSubService":
        return cls(
            session=session,
            api_root=settings.api_root,
            timeout=settings.request_timeout,
            user_agent=settings.user_agent,
        )

    def create_topic(self, topic: Topic) -> Topic:
        return self._parse(Topic, self._call("POST", self._url("topics"), topic))

    def get_topic(self, name: str) -> Topic:
        return self._parse(Topic, self._call("GET", self._url("topics", name)))

    def delete_topic(self, name: str) -> None:
        self._call("DELETE", self._url("topics", name))

    def publish(self, request: PublishRequest) -> PublishResponse:
        return self._parse(PublishResponse, self._call("POST", self._url("topics", "publish"), request))

    def create_subscription(self, subscription: Subscription) -> Subscription:
        return self._parse(Subscription, self._call("POST", self._url("subscriptions"), subscription))

    def get_subscription(self, name: str) -> Subscription:
        return self._parse(Subscription, self._call("GET", self._url("subscriptions", name)))

    def delete_subscription(self, name: str) -> None:
        self._call("DELETE", self._url("subscriptions", name))

    def pull(self, request: PullRequest) -> PullResponse:
        return self._parse(PullResponse, self._call("POST", self._url("subscriptions", "pull"), request))

    def acknowledge(self, request: AcknowledgeRequest) -> None:
        self._call("POST", self._url("subscriptions", "acknowledge"), request)

    def modify_ack_deadline(self, request: ModifyAckDeadlineRequest) -> None:
        self._call("POST", self._url("subscriptions", "modifyAckDeadline"), request)

    def modify_push_config(self, request: ModifyPushConfigRequest) -> None:
        self._call("POST", self._url("subscriptions", "modifyPushConfig"), request)

    def _url(self, *parts: str) -> str:
        return "/".join([self._api_root] + [quote(part.strip("/"), safe="/") for part in parts])

    def _call(self, method: str, url: str, body: Optional[CamelCaseModel] = None) -> dict[str, Any]:
        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(
                method,
                url,
                json=body.to_wire() if body is not None else None,
                headers={"User-Agent": self._user_agent},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        if response.status_code >= 400:
            raise self._service_error(method, url, response)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(f"{method} {url} returned a body that is not JSON") from exc

    @staticmethod
    def _service_error(method: str, url: str, response: requests.Response) -> ServiceError:
        info = None
        # non-JSON or unexpected error bodies leave only the status code
        with suppress(ValueError):
            info = ErrorResponse.model_validate(response.json()).error
        detail = info.message if info is not None else response.reason
        message = f"{method} {url} returned {response.status_code}: {detail}"
        error_class = NotFoundError if response.status_code == 404 else ServiceError
        return error_class(message, status_code=response.status_code, info=info)

    @staticmethod
    def _parse(model: Type[ModelT], data: dict[str, Any]) -> ModelT:
        try:
            return model.model_validate(data)
        except pydantic.ValidationError as exc:
            raise DecodeError(f"unexpected {model.__name__} body: {exc}") from exc
