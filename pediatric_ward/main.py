"""Pediatric ward console: admissions, discharges, operators and reports."""

import shlex
import sys
from dataclasses import dataclass
from datetime import date
from functools import wraps
from pathlib import Path

from rich.console import Console, Group, RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.status import Status
from rich.table import Table

from pediatric_ward import config
from pediatric_ward.reports import (
    EXPORT_COLUMNS,
    ReportFilter,
    export_rows,
    filter_patients,
    format_date,
    status_label,
    ward_summary,
    write_pdf,
)
from pediatric_ward.ward_records.database import (
    DigitizerRepository,
    PatientRepository,
    SessionState,
    get_store,
)
from pediatric_ward.ward_records.database.patient_repository import Patient
from pediatric_ward.ward_records.database.schema import ANTIBIOTIC_OPTIONS, BED_OPTIONS, GENDERS
from pediatric_ward.ward_records.database.store import RecordStore, WriteResult
from pediatric_ward.ward_records.database.validation import calculate_age

console = Console()

# Short names accepted on the command line -> patient attribute
FIELD_ALIASES = {
    "name": "name",
    "birth": "birth_date",
    "birth_date": "birth_date",
    "gender": "gender",
    "mother": "mother_name",
    "mother_name": "mother_name",
    "bed": "bed",
    "diagnosis": "diagnosis",
    "antibiotics": "antibiotics",
    "entry": "entry_date",
    "entry_date": "entry_date",
    "discharge": "discharge_date",
    "discharge_date": "discharge_date",
}

REPORT_ALIASES = {
    "search": "search",
    "bed": "bed",
    "antibiotic": "antibiotic",
    "status": "status",
    "start": "start_date",
    "end": "end_date",
}

HELP_TEXT = """\
[bold]Session[/bold]
  login <email>                      Sign in with a registered email
  register name=.. email=..          Create an operator account and sign in
  logout | whoami

[bold]Patients[/bold]
  dashboard                          Ward occupancy overview
  patients [term]                    List patients, optionally by name or diagnosis
  show <id>                          Patient details
  admit name=.. birth=YYYY-MM-DD gender=M|F mother=.. bed=.. [diagnosis=..]
        [antibiotics=a,b] [entry=YYYY-MM-DD]
  edit <id> field=value ...          Change any admission field
  discharge <id> [YYYY-MM-DD]        Discharge (defaults to today)
  delete <id> [-y]                   Remove a record

[bold]Operators[/bold]
  digitizers                         List operators
  add-digitizer name=.. email=..     Register an operator

[bold]Reports[/bold]
  report [search=..] [bed=..] [antibiotic=..] [status=all|admitted|discharged]
         [start=YYYY-MM-DD end=YYYY-MM-DD]
  export <same filters>              Save the filtered report as PDF

Patient IDs may be shortened to any unique prefix. Type 'quit' to leave."""


@dataclass
class WardContext:
    """Repositories and settings shared by every command."""
    store: RecordStore
    patients: PatientRepository
    digitizers: DigitizerRepository
    session: SessionState
    export_dir: Path


def build_context(store: RecordStore | None = None, export_dir: Path | str | None = None) -> WardContext:
    store = store or get_store()
    digitizers = DigitizerRepository(store)
    return WardContext(
        store=store,
        patients=PatientRepository(store),
        digitizers=digitizers,
        session=SessionState(store, digitizers),
        export_dir=Path(export_dir or config.EXPORT_DIR),
    )


class CommandError(Exception):
    """Raised for malformed commands; shown to the operator as-is."""
    pass


def requires_login(handler):
    @wraps(handler)
    def wrapper(ctx: WardContext, args: list[str]):
        if ctx.session.get_current_user() is None:
            return "[yellow]Please sign in first: login <email> or register name=.. email=..[/yellow]"
        return handler(ctx, args)
    return wrapper


def parse_assignments(args: list[str], aliases: dict[str, str]) -> dict:
    """Turn ``key=value`` arguments into a dict keyed by canonical field names."""
    values = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep:
            raise CommandError(f"Expected key=value, got '{arg}'")
        field_name = aliases.get(key.strip().lower())
        if field_name is None:
            raise CommandError(f"Unknown field '{key}'. Known: {', '.join(sorted(aliases))}")
        values[field_name] = value.strip()

    if "antibiotics" in values:
        values["antibiotics"] = [a.strip() for a in values["antibiotics"].split(",") if a.strip()]
    if "gender" in values:
        values["gender"] = values["gender"].upper()
    return values


def resolve_patient(ctx: WardContext, ref: str) -> Patient:
    """Find a patient by full ID or unique ID prefix."""
    patient = ctx.patients.find_one(ref)
    if patient:
        return patient

    matches = [p for p in ctx.patients.find() if p.id.startswith(ref)]
    if not matches:
        raise CommandError(f"No patient with ID '{ref}'")
    if len(matches) > 1:
        raise CommandError(f"ID prefix '{ref}' matches {len(matches)} patients, type more of it")
    return matches[0]


def write_notice(result: WriteResult | None) -> str:
    if result and result.warning:
        return f"\n[yellow]Warning:[/yellow] {escape(result.warning)}"
    return ""


def patients_table(patients: list[Patient], title: str | None = None) -> Table:
    table = Table(title=title, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Patient")
    table.add_column("Age", justify="right")
    table.add_column("Bed")
    table.add_column("Status")
    table.add_column("Entry date")

    for p in patients:
        status = status_label(p)
        if p.discharge_date:
            status = f"[green]{status} {format_date(p.discharge_date)}[/green]"
        else:
            status = f"[yellow]{status}[/yellow]"
        table.add_row(
            p.id[:8],
            escape(p.name),
            str(calculate_age(date.fromisoformat(p.birth_date))),
            escape(p.bed),
            status,
            format_date(p.entry_date),
        )
    return table


# Session commands

def handle_login(ctx: WardContext, args: list[str]) -> str:
    if len(args) != 1:
        raise CommandError("Usage: login <email>")
    user = ctx.session.login(args[0])
    if user is None:
        return "[red]Email not registered.[/red] Check it or create an account with register."
    return f"Signed in as [bold]{escape(user.name)}[/bold] ({escape(user.email)})."


def handle_register(ctx: WardContext, args: list[str]) -> str:
    values = parse_assignments(args, {"name": "name", "email": "email"})
    try:
        user = ctx.digitizers.register(values.get("name", ""), values.get("email", ""))
    except ValueError as e:
        return f"[red]{escape(str(e))}[/red]"
    ctx.session.set_current_user(user)
    return f"Account created. Signed in as [bold]{escape(user.name)}[/bold].{write_notice(ctx.digitizers.last_write)}"


def handle_logout(ctx: WardContext, args: list[str]) -> str:
    ctx.session.logout()
    return "Signed out."


def handle_whoami(ctx: WardContext, args: list[str]) -> str:
    user = ctx.session.get_current_user()
    if user is None:
        return "Not signed in."
    return escape(f"{user.name} ({user.email})")


# Patient commands

@requires_login
def handle_dashboard(ctx: WardContext, args: list[str]) -> RenderableType:
    summary = ward_summary(ctx.patients.find(), capacity=config.WARD_CAPACITY)

    overview = Table.grid(padding=(0, 3))
    overview.add_row("Admitted now", str(summary.admitted))
    overview.add_row("Total records", str(summary.total))
    overview.add_row("Bed occupancy", f"{summary.occupancy_percent}%")
    overview.add_row("Discharges", str(summary.discharged))
    overview.add_row("Female / Male", f"{summary.female} / {summary.male}")

    beds = Table(title="Occupancy by bed", header_style="bold")
    beds.add_column("Bed")
    beds.add_column("Patients", justify="right")
    for bed in BED_OPTIONS:
        if bed in summary.beds:
            beds.add_row(bed, str(summary.beds[bed]))

    return Group(Panel(overview, title="Ward overview"), beds)


@requires_login
def handle_patients(ctx: WardContext, args: list[str]) -> RenderableType:
    patients = ctx.patients.search(" ".join(args))
    if not patients:
        return "No patients found."
    return patients_table(patients)


@requires_login
def handle_show(ctx: WardContext, args: list[str]) -> RenderableType:
    if len(args) != 1:
        raise CommandError("Usage: show <id>")
    p = resolve_patient(ctx, args[0])
    operator = ctx.digitizers.get_by_id(p.digitizer_id) if p.digitizer_id else None

    details = Table.grid(padding=(0, 2))
    details.add_row("ID", p.id)
    details.add_row("Birth date", f"{format_date(p.birth_date)} ({calculate_age(date.fromisoformat(p.birth_date))} years)")
    details.add_row("Gender", GENDERS.get(p.gender, p.gender))
    details.add_row("Mother", escape(p.mother_name))
    details.add_row("Bed", escape(p.bed))
    details.add_row("Diagnosis", escape(p.diagnosis) or "-")
    details.add_row("Antibiotics", escape(", ".join(p.antibiotics)) or "-")
    details.add_row("Entry date", format_date(p.entry_date))
    details.add_row("Discharge", format_date(p.discharge_date) or "Admitted")
    details.add_row("Recorded by", escape(operator.name) if operator else "-")
    return Panel(details, title=escape(p.name))


@requires_login
def handle_admit(ctx: WardContext, args: list[str]) -> str:
    values = parse_assignments(args, FIELD_ALIASES)
    values.setdefault("gender", "M")
    values["digitizer_id"] = ctx.session.get_current_user().id

    patient = ctx.patients.save(values)
    unknown = [a for a in patient.antibiotics if a not in ANTIBIOTIC_OPTIONS]
    note = f" Custom antibiotics: {escape(', '.join(unknown))}." if unknown else ""
    return (
        f"Admitted [bold]{escape(patient.name)}[/bold] to bed {escape(patient.bed)} (ID {patient.id[:8]}).{note}"
        f"{write_notice(ctx.patients.last_write)}"
    )


@requires_login
def handle_edit(ctx: WardContext, args: list[str]) -> str:
    if len(args) < 2:
        raise CommandError("Usage: edit <id> field=value ...")
    current = resolve_patient(ctx, args[0])
    values = parse_assignments(args[1:], FIELD_ALIASES)
    values["id"] = current.id

    patient = ctx.patients.save(values)
    return f"Updated [bold]{escape(patient.name)}[/bold].{write_notice(ctx.patients.last_write)}"


@requires_login
def handle_discharge(ctx: WardContext, args: list[str]) -> str:
    if len(args) not in (1, 2):
        raise CommandError("Usage: discharge <id> [YYYY-MM-DD]")
    current = resolve_patient(ctx, args[0])
    if current.discharge_date:
        return f"{escape(current.name)} was already discharged on {format_date(current.discharge_date)}."

    patient = ctx.patients.discharge(current.id, args[1] if len(args) == 2 else None)
    return (
        f"Discharged [bold]{escape(patient.name)}[/bold] on {format_date(patient.discharge_date)}."
        f"{write_notice(ctx.patients.last_write)}"
    )


@requires_login
def handle_delete(ctx: WardContext, args: list[str]) -> str:
    confirmed = "-y" in args
    refs = [a for a in args if a != "-y"]
    if len(refs) != 1:
        raise CommandError("Usage: delete <id> [-y]")
    patient = resolve_patient(ctx, refs[0])

    if not confirmed:
        return f"This removes the record of {escape(patient.name)} for good. Run: delete {escape(refs[0])} -y"

    ctx.patients.delete_one(patient.id)
    return f"Deleted {escape(patient.name)}.{write_notice(ctx.patients.last_write)}"


# Operator commands

@requires_login
def handle_digitizers(ctx: WardContext, args: list[str]) -> RenderableType:
    table = Table(title="Digitizers", header_style="bold")
    table.add_column("Name")
    table.add_column("Email")
    for d in ctx.digitizers.find():
        table.add_row(escape(d.name), escape(d.email))
    return table


@requires_login
def handle_add_digitizer(ctx: WardContext, args: list[str]) -> str:
    values = parse_assignments(args, {"name": "name", "email": "email"})
    try:
        user = ctx.digitizers.register(values.get("name", ""), values.get("email", ""))
    except ValueError as e:
        return f"[red]{escape(str(e))}[/red]"
    return f"Registered {escape(user.name)} ({escape(user.email)}).{write_notice(ctx.digitizers.last_write)}"


# Reports

def _filtered_patients(ctx: WardContext, args: list[str]) -> list[Patient]:
    filters = ReportFilter(**parse_assignments(args, REPORT_ALIASES))
    try:
        return filter_patients(ctx.patients.find(), filters)
    except ValueError as e:
        raise CommandError(str(e))


@requires_login
def handle_report(ctx: WardContext, args: list[str]) -> RenderableType:
    rows = export_rows(_filtered_patients(ctx, args))

    table = Table(title="Report", header_style="bold")
    for column in EXPORT_COLUMNS:
        table.add_column(column)
    for row in rows:
        table.add_row(*(escape(value) for value in row.as_list()))
    return Group(table, f"{len(rows)} patient(s).")


@requires_login
def handle_export(ctx: WardContext, args: list[str]) -> str:
    rows = export_rows(_filtered_patients(ctx, args))
    path = write_pdf(rows, ctx.export_dir)
    return f"Exported {len(rows)} patient(s) to [bold]{escape(str(path))}[/bold]."


def handle_help(ctx: WardContext, args: list[str]) -> str:
    return HELP_TEXT


COMMAND_HANDLERS = {
    "help": handle_help,
    "login": handle_login,
    "register": handle_register,
    "logout": handle_logout,
    "whoami": handle_whoami,
    "dashboard": handle_dashboard,
    "patients": handle_patients,
    "show": handle_show,
    "admit": handle_admit,
    "edit": handle_edit,
    "discharge": handle_discharge,
    "delete": handle_delete,
    "digitizers": handle_digitizers,
    "add-digitizer": handle_add_digitizer,
    "report": handle_report,
    "export": handle_export,
}


def process_input(ctx: WardContext, user_input: str) -> RenderableType:
    """Run one command line and return what to show."""
    try:
        parts = shlex.split(user_input)
    except ValueError as e:
        raise CommandError(f"Could not parse command: {e}")
    if not parts:
        return ""

    command, args = parts[0].lower(), parts[1:]
    handler = COMMAND_HANDLERS.get(command)
    if handler is None:
        return f"Unknown command '{command}'. Type 'help' for the list."
    return handler(ctx, args)


def main():
    """Main command loop."""
    config.setup_logging()
    ctx = build_context()

    console.print("[bold blue]Pediatric Ward[/bold blue]")
    mode = "shared database" if getattr(ctx.store, "remote_enabled", False) else "this terminal only"
    console.print(f"Records are stored on {mode}. Type 'help' for commands, 'quit' to leave.\n")

    user = ctx.session.get_current_user()
    if user:
        console.print(f"Signed in as [bold]{escape(user.name)}[/bold].\n")

    is_tty = sys.stdin.isatty()

    while True:
        try:
            user_input = console.input("[bold green]ward>[/bold green] ").strip()
            # Echo input when stdin is piped (not interactive)
            if not is_tty and user_input:
                console.print(f"[dim]{user_input}[/dim]")
        except (EOFError, KeyboardInterrupt):
            console.print("\n[bold blue]Goodbye![/bold blue]")
            break

        if not user_input:
            continue

        if user_input.lower() in ("quit", "exit"):
            console.print("[bold blue]Goodbye![/bold blue]")
            break

        try:
            with Status("Working...", console=console, spinner="dots"):
                response = process_input(ctx, user_input)
            console.print(response, "\n")
        except Exception as e:
            console.print(f"[bold red]Error:[/bold red] {escape(str(e))}\n")


if __name__ == "__main__":
    main()
