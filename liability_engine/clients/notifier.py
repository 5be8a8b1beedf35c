from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from ..config import settings
from ..errors import UpstreamFailure


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass(frozen=True)
class OutboundEmail:
    to: str
    subject: str
    text: str
    attachments: list[Attachment] = field(default_factory=list)
    tags: dict[str, str] = field(default_factory=dict)

    def as_payload(self) -> dict[str, Any]:
        return {
            "to": self.to,
            "subject": self.subject,
            "text": self.text,
            "tags": dict(self.tags),
            "attachments": [
                {
                    "filename": a.filename,
                    "content_type": a.content_type,
                    "content_b64": base64.b64encode(a.content).decode(),
                }
                for a in self.attachments
            ],
        }


class NotifierClient:
    """Email/notification relay. Fire one request, surface failures, never retry."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.base = (base_url if base_url is not None else settings.notifier_url or "").rstrip("/")
        self.api_key = api_key if api_key is not None else settings.notifier_api_key
        self.timeout = float(timeout if timeout is not None else settings.external_timeout_seconds)

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    def send(self, email: OutboundEmail) -> str:
        """Returns the relay's message id."""
        if not self.base:
            raise UpstreamFailure("notifier is not configured", field="notifier_url")

        try:
            with httpx.Client(timeout=self.timeout) as client:
                r = client.post(f"{self.base}/emails", json=email.as_payload(), headers=self._headers())
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamFailure(f"notifier returned HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"notifier unreachable: {e.__class__.__name__}")
        except ValueError:
            raise UpstreamFailure("notifier returned a non-JSON body")

        msg_id = data.get("id") if isinstance(data, dict) else None
        if not msg_id:
            raise UpstreamFailure("notifier response is missing a message id")
        return str(msg_id)


def get_notifier() -> NotifierClient:
    return NotifierClient()
