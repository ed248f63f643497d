"""Notification channel registry.

Uses the fake push adapter unless another adapter is installed with
``set_channel`` (or selected through ``NOTIFICATION_CHANNEL``).
"""

import os

from marketplace.notifications.push_port import PushPort

_channel: PushPort | None = None


def get_channel() -> PushPort:
    """Return the configured push channel (singleton)."""
    global _channel
    if _channel is None:
        channel_type = os.getenv("NOTIFICATION_CHANNEL", "fake").lower()
        if channel_type == "fake":
            from marketplace.notifications.fake_push import FakePushAdapter

            _channel = FakePushAdapter()
        else:
            raise ValueError(f"Unknown notification channel: {channel_type}")
    return _channel


def set_channel(channel: PushPort) -> None:
    global _channel
    _channel = channel


def reset_channels() -> None:
    """Reset the channel singleton (useful for testing)."""
    global _channel
    _channel = None
