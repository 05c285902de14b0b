"""Helpers for RabbitMQ integration tests."""


def publish(connection, queue, *bodies):
    channel = connection.channel()
    for body in bodies:
        channel.basic_publish(exchange="", routing_key=queue, body=body)
    channel.close()


def queue_depth(connection, queue) -> int:
    channel = connection.channel()
    depth = channel.queue_declare(queue=queue, durable=True, passive=True).method.message_count
    channel.close()
    return depth
