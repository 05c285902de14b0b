"""RabbitMQ adapter for pullstage."""

from pullstage.adapters.rabbitmq.client import RabbitMQClient

__all__ = ["RabbitMQClient"]
