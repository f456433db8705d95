"""JSON/REST adapter for the courier service protocol."""

from courier.adapters.http.service import HttpPubSubService

__all__ = ["HttpPubSubService"]
