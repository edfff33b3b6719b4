"""Filing-related Pydantic models.

API payloads use camelCase keys; each field accepts both the API key and
its snake_case name.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


def _alias(*names: str) -> Any:
    return Field(default=None, validation_alias=AliasChoices(*names))


class ApiModel(BaseModel):
    """Base for immutable API objects."""

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)


class Entity(ApiModel):
    """Company or person attached to a filing."""

    cik: str | None = None
    name: str | None = _alias("name", "companyName")
    irs_number: str | None = _alias("irsNo", "irs_number")
    state_of_incorporation: str | None = _alias("stateOfIncorporation", "state_of_incorporation")
    fiscal_year_end: str | None = _alias("fiscalYearEnd", "fiscal_year_end")
    type: str | None = None
    act: str | None = None
    file_number: str | None = _alias("fileNo", "file_number")
    film_number: str | None = _alias("filmNo", "film_number")
    sic: str | None = None
    ticker: str | None = None
    exchange: str | None = None


class DocumentFormatFile(ApiModel):
    """Document attached to a filing."""

    sequence: str | None = None
    description: str | None = None
    type: str | None = None
    url: str | None = _alias("documentUrl", "url")
    size: int | None = None


class DataFile(DocumentFormatFile):
    """Data exhibit (XBRL instance, schema, ...) attached to a filing."""


class Filing(ApiModel):
    """Filing metadata returned by the query API."""

    id: str | None = None
    accession_number: str | None = _alias("accessionNo", "accession_number")
    cik: str | None = None
    ticker: str | None = None
    company_name: str | None = _alias("companyName", "company_name")
    company_name_long: str | None = _alias("companyNameLong", "company_name_long")
    form_type: str | None = _alias("formType", "form_type")
    period_of_report: str | None = _alias("periodOfReport", "period_of_report")
    filed_at: str | None = _alias("filedAt", "filed_at")
    txt_url: str | None = _alias("linkToTxt", "txt_url")
    html_url: str | None = _alias("linkToHtml", "html_url")
    xbrl_url: str | None = _alias("linkToXbrl", "xbrl_url")
    filing_details_url: str | None = _alias("linkToFilingDetails", "filing_details_url")
    entities: tuple[Entity, ...] = ()
    documents: tuple[DocumentFormatFile, ...] = Field(
        default=(), validation_alias=AliasChoices("documentFormatFiles", "documents")
    )
    data_files: tuple[DataFile, ...] = Field(
        default=(), validation_alias=AliasChoices("dataFiles", "data_files")
    )

    @property
    def url(self) -> str | None:
        """Preferred link: HTML document, else the text submission."""
        return self.html_url or self.txt_url or None

    def to_record(self) -> dict[str, Any]:
        """Flatten to a row for tabular export."""
        return {
            "accession_number": self.accession_number,
            "cik": self.cik,
            "ticker": self.ticker,
            "company_name": self.company_name,
            "form_type": self.form_type,
            "filed_at": self.filed_at,
            "period_of_report": self.period_of_report,
            "url": self.url,
        }
