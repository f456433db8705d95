"""Resource and envelope models matching the service's JSON structure."""

from typing import Optional

from pydantic import field_serializer

from courier.models.base import CamelCaseModel


class Label(CamelCaseModel):
    """Wire form of one message label. Exactly one value field is expected."""

    key: str
    num_value: Optional[int] = None
    str_value: Optional[str] = None

    @field_serializer("num_value", when_used="json")
    def _int64_as_string(self, value: Optional[int]) -> Optional[str]:
        # 64-bit integers travel as JSON strings
        return None if value is None else str(value)


class PubsubMessage(CamelCaseModel):
    """Message envelope: base64 payload plus labels."""

    data: str = ""
    label: list[Label] = []
    message_id: Optional[str] = None


class PushConfig(CamelCaseModel):
    push_endpoint: str


class Topic(CamelCaseModel):
    name: str


class Subscription(CamelCaseModel):
    name: str
    topic: Optional[str] = None
    ack_deadline_seconds: Optional[int] = None
    push_config: Optional[PushConfig] = None
