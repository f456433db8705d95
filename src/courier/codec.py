"""Message envelope codec: payload plus labels to and from the wire form."""

import base64
import binascii
from typing import Mapping, Optional

from courier.errors import DecodeError, LabelTypeError, ValidationError
from courier.message import IntegerLabel, Label, StringLabel, as_labels
from courier.models.resource import Label as WireLabel
from courier.models.resource import PubsubMessage


def encode(payload: bytes, labels: Optional[Mapping[str, object]] = None) -> PubsubMessage:
    """
    Build the wire envelope for a payload and its labels.

    Args:
        payload: Message body; sent base64 encoded
        labels: Mapping of label keys to int or str values

    Returns:
        PubsubMessage ready for a publish request

    Raises:
        LabelTypeError: a label value is neither int nor str
        ValidationError: payload is not bytes-like
    """
    if not isinstance(payload, (bytes, bytearray, memoryview)):
        raise ValidationError(f"payload must be bytes, got {type(payload).__name__}")
    wire_labels = []
    for key, value in as_labels(labels).items():
        if isinstance(value, IntegerLabel):
            wire_labels.append(WireLabel(key=key, num_value=int(value)))
        else:
            wire_labels.append(WireLabel(key=key, str_value=str(value)))
    return PubsubMessage(
        data=base64.b64encode(bytes(payload)).decode("ascii"),
        label=wire_labels,
    )


def decode(message: PubsubMessage) -> tuple[bytes, dict[str, Label]]:
    """
    Invert :func:`encode`.

    A label with neither value field set decodes to ``StringLabel("")``.

    Raises:
        DecodeError: data is not valid base64
    """
    try:
        payload = base64.b64decode(message.data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"message data is not valid base64: {exc}") from exc

    labels: dict[str, Label] = {}
    for label in message.label:
        if label.str_value:
            labels[label.key] = StringLabel(label.str_value)
        elif label.num_value is not None:
            try:
                labels[label.key] = IntegerLabel(label.num_value)
            except LabelTypeError as exc:
                raise DecodeError(f"label {label.key!r}: {exc}") from exc
        else:
            labels[label.key] = StringLabel("")
    return payload, labels
