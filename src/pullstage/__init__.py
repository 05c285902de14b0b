"""Demand-driven pull producer for Cloud Pub/Sub style message queues."""

from pullstage.auth import MetadataServerToken, StaticToken
from pullstage.config import ProducerOptions, Subscription
from pullstage.exceptions import (
    ConfigurationError,
    PullstageError,
    TokenError,
    TransportError,
    UnknownRegistryKey,
)
from pullstage.models.message import AckHandle, Message
from pullstage.producer.producer import Producer
from pullstage.registry import AckRegistry, default_registry

__all__ = [
    "AckHandle",
    "AckRegistry",
    "ConfigurationError",
    "Message",
    "MetadataServerToken",
    "Producer",
    "ProducerOptions",
    "PullstageError",
    "StaticToken",
    "Subscription",
    "TokenError",
    "TransportError",
    "UnknownRegistryKey",
    "default_registry",
]
