"""Flattens sections into Category/Field/Value rows."""

import csv
import io
from typing import Iterator, List, Tuple

from clinic_reports.models import CsvEntryMode, SectionData
from clinic_reports.reporting.definitions import ReportDefinition

Row = Tuple[str, str, str]


def iter_rows(sections: List[SectionData]) -> Iterator[Row]:
    """Yield one (category, field, value) row per section field, in section order."""
    for section in sections:
        for row in section.fields:
            yield section.category, row.label, row.value
        for entry in section.entries:
            if section.csv_entry_mode == CsvEntryMode.PREFIX:
                for row in entry.fields:
                    yield section.category, f"{entry.label} {row.label}", row.value
                continue
            if entry.heading:
                yield entry.label, "Record", entry.heading
            for row in entry.fields:
                yield entry.label, row.label, row.value


def export_csv(definition: ReportDefinition, sections: List[SectionData]) -> str:
    """
    Serialize sections to CSV text.

    Fields containing delimiters, quotes or line breaks are quoted (RFC 4180);
    rows are separated by a bare newline.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(definition.csv_header)
    for row in iter_rows(sections):
        writer.writerow(row)
    return buffer.getvalue()
