from __future__ import annotations

from typing import Any, Optional

import httpx

from ..config import settings
from ..errors import UpstreamFailure


class DocumentRendererClient:
    """
    Remote PDF renderer. The core hands over a finished report snapshot and
    gets PDF bytes back; page layout belongs to the renderer.
    No retries here: a failure is surfaced to the caller as UpstreamFailure.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self.base = (base_url if base_url is not None else settings.document_renderer_url or "").rstrip("/")
        self.timeout = float(timeout if timeout is not None else settings.external_timeout_seconds)

    def render_comparison_report(self, snapshot: dict[str, Any]) -> bytes:
        if not self.base:
            raise UpstreamFailure("document renderer is not configured", field="document_renderer_url")

        url = f"{self.base}/render/comparison-report"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                r = client.post(url, json=snapshot, headers={"Accept": "application/pdf"})
                r.raise_for_status()
                body = r.content
        except httpx.HTTPStatusError as e:
            raise UpstreamFailure(f"document renderer returned HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"document renderer unreachable: {e.__class__.__name__}")

        # Renderer is expected to answer with a PDF; anything else is malformed
        if not body or not body.startswith(b"%PDF"):
            raise UpstreamFailure("document renderer returned a non-PDF body")
        return body


def get_document_renderer() -> DocumentRendererClient:
    return DocumentRendererClient()
