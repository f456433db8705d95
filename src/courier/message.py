"""Message and label types handed to and returned from courier."""

from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

from courier.errors import LabelTypeError, ValidationError

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class IntegerLabel(int):
    """Label value holding a signed 64-bit integer."""

    def __new__(cls, value: int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise LabelTypeError(f"integer label needs an int, got {type(value).__name__}")
        if not INT64_MIN <= value <= INT64_MAX:
            raise LabelTypeError(f"integer label {value} does not fit in 64 bits")
        return super().__new__(cls, value)

    def __repr__(self) -> str:
        return f"IntegerLabel({int(self)})"


class StringLabel(str):
    """Label value holding a string."""

    def __new__(cls, value: str):
        if not isinstance(value, str):
            raise LabelTypeError(f"string label needs a str, got {type(value).__name__}")
        return super().__new__(cls, value)

    def __repr__(self) -> str:
        return f"StringLabel({str.__repr__(self)})"


Label = Union[IntegerLabel, StringLabel]


def as_label(value: object) -> Label:
    """
    Coerce a plain label value into its tagged variant.

    Raises:
        LabelTypeError: value is neither an int (bool excluded) nor a str
    """
    if isinstance(value, (IntegerLabel, StringLabel)):
        return value
    if isinstance(value, str):
        return StringLabel(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return IntegerLabel(value)
    raise LabelTypeError(f"label value must be an int or a str, got {type(value).__name__}")


def as_labels(labels: Optional[Mapping[str, object]]) -> dict[str, Label]:
    if not labels:
        return {}
    result = {}
    for key, value in labels.items():
        if not isinstance(key, str):
            raise LabelTypeError(f"label key must be a str, got {type(key).__name__}")
        result[key] = as_label(value)
    return result


@dataclass
class Message:
    """
    The unit of data transfer.

    Labels given as plain ``int``/``str`` values are converted to
    :class:`IntegerLabel`/:class:`StringLabel` on construction, so a bad
    label type fails here rather than at publish time.

    ``ack_id``, ``message_id`` and ``subscription`` are only set on messages
    retrieved from a subscription; ``ack_id`` is valid only against that
    ``subscription``.
    """

    data: bytes = b""
    labels: dict[str, Label] = field(default_factory=dict)
    ack_id: Optional[str] = None
    message_id: Optional[str] = None
    subscription: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.data, str):
            self.data = self.data.encode("utf-8")
        elif isinstance(self.data, (bytearray, memoryview)):
            self.data = bytes(self.data)
        elif not isinstance(self.data, bytes):
            raise ValidationError(f"message data must be bytes or str, got {type(self.data).__name__}")
        self.labels = as_labels(self.labels)
