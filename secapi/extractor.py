"""Item extraction endpoint."""

from __future__ import annotations

from typing import Any

from secapi.models.filing import Filing
from secapi.models.fulltext import ExtractedData
from secapi.transport import GovernedTransport, json_body


class Extractor:
    """Extract text sections from a filing document."""

    def __init__(self, transport: GovernedTransport) -> None:
        self._transport = transport

    def extract(self, filing: Filing | str, **options: Any) -> ExtractedData:
        """Extract content from a filing.

        Args:
            filing: Filing object (its `url` is used) or a document URL
            **options: Extra request fields (e.g. item="1A", type="text")

        Returns:
            Extracted text and sections
        """
        url = filing if isinstance(filing, str) else filing.url
        if not url:
            raise ValueError("Filing has no document URL to extract from")
        response = self._transport.post("/extractor", json={"url": url, **options})
        return ExtractedData.from_response(json_body(response))
