"""Report request, section and attachment models."""
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from clinic_reports.models.enums import (
    AttachmentClassification,
    CsvEntryMode,
    EntryLayout,
    ExportFormat,
    ReportType,
    SectionKey,
)


class AttachmentReference(BaseModel):
    """A stored file referenced by a record; resolved at render time."""
    model_config = ConfigDict(frozen=True)

    url: str
    bucket_hint: str


class ResolvedAttachment(BaseModel):
    """Bytes and classification of a fetched attachment."""
    model_config = ConfigDict(frozen=True)

    content: bytes = b""
    mime_type: str = ""
    classification: AttachmentClassification

    @classmethod
    def unavailable(cls) -> "ResolvedAttachment":
        return cls(classification=AttachmentClassification.UNAVAILABLE)


class FieldRow(BaseModel):
    """A single label/value pair, value already rendered for display."""
    model_config = ConfigDict(frozen=True)

    label: str
    value: str
    csv_only: bool = False
    pdf_value: Optional[str] = None

    @property
    def pdf_text(self) -> str:
        """Value as drawn in the PDF, which may use a different fallback than the CSV."""
        return self.value if self.pdf_value is None else self.pdf_value


class SectionEntry(BaseModel):
    """One member of a collection section, e.g. "Prescription 3"."""
    model_config = ConfigDict(frozen=True)

    label: str
    heading: Optional[str] = None
    fields: List[FieldRow] = Field(default_factory=list)
    attachment: Optional[AttachmentReference] = None


class SectionData(BaseModel):
    """A rendered-ready report section shared by the CSV and PDF outputs."""
    model_config = ConfigDict(frozen=True)

    key: SectionKey
    title: str
    category: str
    fields: List[FieldRow] = Field(default_factory=list)
    entries: List[SectionEntry] = Field(default_factory=list)
    image: Optional[AttachmentReference] = None
    entry_layout: EntryLayout = EntryLayout.FIELDS
    csv_entry_mode: CsvEntryMode = CsvEntryMode.CATEGORY
    pdf_value_suffix: str = ""

    def attachment_references(self) -> List[AttachmentReference]:
        """All attachment references carried by this section, in draw order."""
        refs = [self.image] if self.image else []
        refs.extend(entry.attachment for entry in self.entries if entry.attachment)
        return refs


class ExportOptions(BaseModel):
    """Sparse section selection mask; absent keys are disabled."""
    model_config = ConfigDict(frozen=True)

    enabled: FrozenSet[SectionKey] = Field(default_factory=frozenset)
    mentioned: FrozenSet[SectionKey] = Field(default_factory=frozenset)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ExportOptions":
        """Build the mask from the request's exportOptions object.

        Only a literal boolean true enables a key; unknown keys are ignored.
        """
        enabled = set()
        mentioned = set()
        for name, value in raw.items():
            try:
                key = SectionKey(name)
            except ValueError:
                continue
            mentioned.add(key)
            if value is True:
                enabled.add(key)
        return cls(enabled=frozenset(enabled), mentioned=frozenset(mentioned))

    def is_enabled(self, key: SectionKey) -> bool:
        if key in self.enabled:
            return True
        # Emergency contact rides along with basic info unless the mask says otherwise
        if key == SectionKey.EMERGENCY_CONTACT and key not in self.mentioned:
            return SectionKey.BASIC_INFO in self.enabled
        return False


class ReportRequest(BaseModel):
    """Validated, immutable input for one report generation."""
    model_config = ConfigDict(frozen=True)

    report_type: ReportType
    subject: Dict[str, Any] = Field(default_factory=dict)
    collections: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    export_options: ExportOptions = Field(default_factory=ExportOptions)
    export_format: ExportFormat = ExportFormat.PDF

    def collection(self, name: str) -> List[Dict[str, Any]]:
        """A related collection, empty when absent."""
        return self.collections.get(name, [])


class ReportOutput(BaseModel):
    """Final deliverable: bytes plus HTTP metadata."""
    content: bytes
    media_type: str
    filename: str
