"""Fake push adapter: records sent pushes for testing."""

import threading
from uuid import uuid4

from marketplace.notifications.push_port import PushPort


class FakePushAdapter(PushPort):
    """Push adapter that records notifications in memory for test assertions."""

    def __init__(self):
        self._lock = threading.Lock()
        self.sent_pushes: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Push delivery failed"
        self.raise_on_send = False

    def configure(self, should_succeed: bool = True, failure_reason: str = "Push delivery failed", raise_on_send=False):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raise_on_send = raise_on_send

    def send(self, recipient_id: str, title: str, body: str, data: dict | None = None) -> dict:
        if self.raise_on_send:
            raise ConnectionError(self.failure_reason)

        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"push-{uuid4().hex[:12]}"
        with self._lock:
            self.sent_pushes.append(
                {
                    "message_id": message_id,
                    "recipient_id": recipient_id,
                    "title": title,
                    "body": body,
                    "data": data or {},
                }
            )

        return {"message_id": message_id, "status": "sent"}

    def sent_to(self, recipient_id: str) -> list[dict]:
        return [push for push in self.sent_pushes if push["recipient_id"] == str(recipient_id)]

    def reset(self):
        """Clear sent pushes (useful between tests)."""
        with self._lock:
            self.sent_pushes.clear()
        self.should_succeed = True
        self.failure_reason = "Push delivery failed"
        self.raise_on_send = False
