"""Company service: company records kept in sync with the identity service over RabbitMQ."""

__version__ = "1.0.0"
