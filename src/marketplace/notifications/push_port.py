"""Push notification channel port: abstract interface for push dispatch."""

from abc import ABC, abstractmethod


class PushPort(ABC):
    """Abstract interface for push notification adapters."""

    @abstractmethod
    def send(self, recipient_id: str, title: str, body: str, data: dict | None = None) -> dict:
        """Send a push notification to every device of ``recipient_id``.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
