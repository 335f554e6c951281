"""Report filtering, export projection, PDF rendering and the ward dashboard summary."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from io import BytesIO
from pathlib import Path
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from pediatric_ward.ward_records.database.patient_repository import Patient

REPORT_TITLE = "Pediatric Ward Report"
EXPORT_COLUMNS = ["Patient", "Entry date", "Status", "Bed", "Diagnosis"]


class StatusFilter(Enum):
    ALL = "all"
    ADMITTED = "admitted"
    DISCHARGED = "discharged"


@dataclass
class ReportFilter:
    """Report criteria. Unset criteria let every record through."""
    search: str = ""
    bed: str | None = None
    antibiotic: str | None = None
    status: StatusFilter | str = StatusFilter.ALL
    # Applied only when both bounds are given
    start_date: str | None = None
    end_date: str | None = None


@dataclass
class ReportRow:
    name: str
    entry_date: str
    status: str
    bed: str
    diagnosis: str

    def as_list(self) -> list[str]:
        return [self.name, self.entry_date, self.status, self.bed, self.diagnosis]


@dataclass
class WardSummary:
    total: int
    admitted: int
    discharged: int
    female: int
    male: int
    occupancy_percent: int
    beds: dict[str, int] = field(default_factory=dict)


def status_label(patient: Patient) -> str:
    return "Discharged" if patient.discharge_date else "Admitted"


def to_date(value: str | date) -> date:
    """Parse an ISO date or timestamp string down to its calendar day."""
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def format_date(value: str | date | None) -> str:
    return to_date(value).strftime("%d/%m/%Y") if value else ""


def filter_patients(patients: list[Patient], filters: ReportFilter | None = None) -> list[Patient]:
    """Return the patients matching every criterion in ``filters``, in input order.

    Raises:
        ValueError: if the date range starts after it ends.
    """
    filters = filters or ReportFilter()
    status = StatusFilter(filters.status)
    needle = (filters.search or "").strip().casefold()

    date_range = None
    if filters.start_date and filters.end_date:
        start, end = to_date(filters.start_date), to_date(filters.end_date)
        if start > end:
            raise ValueError("Report start date is after the end date")
        date_range = (start, end)

    def matches(p: Patient) -> bool:
        if needle and needle not in p.name.casefold() and needle not in (p.mother_name or "").casefold():
            return False
        if filters.bed and p.bed != filters.bed:
            return False
        if filters.antibiotic and filters.antibiotic not in p.antibiotics:
            return False
        if status is StatusFilter.ADMITTED and p.discharge_date:
            return False
        if status is StatusFilter.DISCHARGED and not p.discharge_date:
            return False
        if date_range and not date_range[0] <= to_date(p.entry_date) <= date_range[1]:
            return False
        return True

    return [p for p in patients if matches(p)]


def export_rows(patients: list[Patient]) -> list[ReportRow]:
    """Project patients onto the report table columns, keeping their order."""
    return [
        ReportRow(
            name=p.name,
            entry_date=format_date(p.entry_date),
            status=status_label(p),
            bed=p.bed,
            diagnosis=p.diagnosis or "",
        )
        for p in patients
    ]


def export_filename(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"report_{int(now.timestamp() * 1000)}.pdf"


def build_pdf(rows: list[ReportRow], generated_at: datetime | None = None, title: str = REPORT_TITLE) -> bytes:
    """Render the report rows as a PDF document and return its bytes."""
    generated_at = generated_at or datetime.now()
    styles = getSampleStyleSheet()
    cell = styles["BodyText"]

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=title)

    table_data = [EXPORT_COLUMNS] + [
        [Paragraph(escape(value), cell) for value in row.as_list()] for row in rows
    ]
    table = Table(table_data, colWidths=[120, 60, 60, 50, 161], repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#2563eb")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#cbd5e1")),
    ]))

    story = [
        Paragraph(escape(title), styles["Title"]),
        Paragraph(
            f"Generated {generated_at.strftime('%d/%m/%Y %H:%M')} · {len(rows)} patient(s)",
            styles["Normal"],
        ),
        Spacer(1, 12),
        table,
    ]
    doc.build(story)
    return buffer.getvalue()


def write_pdf(rows: list[ReportRow], directory: Path | str, now: datetime | None = None) -> Path:
    """Save the PDF report under ``directory`` with a timestamped name."""
    now = now or datetime.now()
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(now)
    path.write_bytes(build_pdf(rows, generated_at=now))
    return path


def ward_summary(patients: list[Patient], capacity: int = 12) -> WardSummary:
    """Dashboard counts: admissions, discharges, gender split and bed occupancy."""
    admitted = [p for p in patients if not p.discharge_date]
    genders = Counter(p.gender for p in patients)
    occupancy = round(len(admitted) / capacity * 100) if capacity > 0 else 0

    return WardSummary(
        total=len(patients),
        admitted=len(admitted),
        discharged=len(patients) - len(admitted),
        female=genders.get("F", 0),
        male=genders.get("M", 0),
        occupancy_percent=occupancy,
        beds=dict(Counter(p.bed for p in admitted)),
    )
