"""NestPush - push notification delivery service."""
