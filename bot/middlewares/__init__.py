"""Middlewares для бота."""

from .subscriber_tracking import SubscriberTrackingMiddleware

__all__ = [
    'SubscriberTrackingMiddleware',
]
