"""Full-text search and extractor models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field

from .filing import ApiModel


class FulltextResult(ApiModel):
    """Single hit from the full-text search API."""

    cik: str | None = None
    ticker: str | None = None
    company_name_long: str | None = Field(
        default=None, validation_alias=AliasChoices("companyNameLong", "company_name_long")
    )
    form_type: str | None = Field(
        default=None, validation_alias=AliasChoices("formType", "form_type")
    )
    url: str | None = Field(default=None, validation_alias=AliasChoices("filingUrl", "url"))
    type: str | None = None
    description: str | None = None
    filed_on: str | None = Field(
        default=None, validation_alias=AliasChoices("filedAt", "filed_on")
    )


class ExtractedData(ApiModel):
    """Text extracted from a filing by the extractor API."""

    text: str | None = None
    sections: dict[str, str] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_response(cls, body: Any) -> ExtractedData:
        """Build from a decoded response body (JSON object or plain text)."""
        if isinstance(body, str):
            return cls(text=body)
        if isinstance(body, dict):
            return cls.model_validate(body)
        raise TypeError(f"Unexpected extractor response type: {type(body).__name__}")

    def section(self, name: str) -> str | None:
        """Return one extracted section by name."""
        if not self.sections:
            return None
        return self.sections.get(name)
