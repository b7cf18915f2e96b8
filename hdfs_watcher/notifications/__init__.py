"""Notification sinks: console output and RabbitMQ."""
