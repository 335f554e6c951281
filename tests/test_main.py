"""Tests for the ward console commands."""

import pytest
from rich.console import Console

from pediatric_ward.main import CommandError, build_context, parse_assignments, process_input, FIELD_ALIASES
from pediatric_ward.ward_records.database.validation import PatientValidationError

from conftest import born_years_ago


def render(renderable) -> str:
    console = Console(record=True, width=160)
    console.print(renderable)
    return console.export_text()


@pytest.fixture
def ctx(store, tmp_path):
    return build_context(store, export_dir=tmp_path / "exports")


@pytest.fixture
def signed_in(ctx):
    process_input(ctx, "login admin@upa.gov.br")
    return ctx


def admit(ctx, name="Ana Souza", bed="01"):
    line = (
        f'admit name="{name}" birth={born_years_ago(6, 10)} gender=F '
        f'mother="Maria Souza" bed={bed} diagnosis="Pneumonia" '
        f'antibiotics=Amoxicilina,Ceftriaxona entry=2024-02-01'
    )
    process_input(ctx, line)
    return next(p for p in ctx.patients.find() if p.name == name)


class TestParseAssignments:
    """Tests for key=value argument parsing."""

    def test_aliases_and_lists(self):
        values = parse_assignments(["mother=Maria", "gender=f", "antibiotics=Amoxicilina, Ceftriaxona"], FIELD_ALIASES)
        assert values == {
            "mother_name": "Maria",
            "gender": "F",
            "antibiotics": ["Amoxicilina", "Ceftriaxona"],
        }

    def test_missing_equals(self):
        with pytest.raises(CommandError, match="key=value"):
            parse_assignments(["Maria"], FIELD_ALIASES)

    def test_unknown_field(self):
        with pytest.raises(CommandError, match="Unknown field"):
            parse_assignments(["colour=blue"], FIELD_ALIASES)


class TestSessionCommands:
    """Tests for login, register and logout."""

    def test_patient_commands_require_login(self, ctx):
        assert "sign in" in process_input(ctx, "patients")

    def test_login(self, ctx):
        assert "Admin Central" in process_input(ctx, "login admin@upa.gov.br")
        assert ctx.session.get_current_user().id == "1"

    def test_login_unknown_email(self, ctx):
        assert "not registered" in process_input(ctx, "login nobody@upa.gov.br")

    def test_register_signs_in(self, ctx):
        process_input(ctx, 'register name="João Silva" email=joao@upa.gov.br')
        assert ctx.session.get_current_user().email == "joao@upa.gov.br"

    def test_logout(self, signed_in):
        process_input(signed_in, "logout")
        assert "Not signed in" in process_input(signed_in, "whoami")

    def test_unknown_command(self, ctx):
        assert "Unknown command" in process_input(ctx, "fly")


class TestPatientCommands:
    """Tests for admission, edit, discharge and delete."""

    def test_admit_records_operator(self, signed_in):
        patient = admit(signed_in)

        assert patient.digitizer_id == "1"
        assert patient.antibiotics == ["Amoxicilina", "Ceftriaxona"]
        assert patient.bed == "01"

    def test_admit_invalid_raises(self, signed_in):
        with pytest.raises(PatientValidationError):
            process_input(signed_in, f'admit name=Ana birth={born_years_ago(6)} bed=01')

    def test_edit_by_id_prefix(self, signed_in):
        patient = admit(signed_in)
        process_input(signed_in, f"edit {patient.id[:8]} bed=ECG")
        assert signed_in.patients.find_one(patient.id).bed == "ECG"

    def test_discharge(self, signed_in):
        patient = admit(signed_in)
        output = process_input(signed_in, f"discharge {patient.id} 2024-02-03")

        assert "03/02/2024" in output
        assert signed_in.patients.find_one(patient.id).discharge_date == "2024-02-03"

    def test_unknown_patient(self, signed_in):
        with pytest.raises(CommandError, match="No patient"):
            process_input(signed_in, "show abc")

    def test_delete_needs_confirmation(self, signed_in):
        patient = admit(signed_in)

        process_input(signed_in, f"delete {patient.id}")
        assert signed_in.patients.find_one(patient.id) is not None

        process_input(signed_in, f"delete {patient.id} -y")
        assert signed_in.patients.find_one(patient.id) is None

    def test_patients_table(self, signed_in):
        admit(signed_in, name="Ana Souza")
        admit(signed_in, name="Pedro Lima", bed="02")

        text = render(process_input(signed_in, "patients pedro"))
        assert "Pedro Lima" in text
        assert "Ana Souza" not in text


class TestReportCommands:
    """Tests for dashboard, report and export."""

    def test_dashboard(self, signed_in):
        admit(signed_in)
        text = render(process_input(signed_in, "dashboard"))
        assert "Admitted now" in text

    def test_report_filters(self, signed_in):
        admit(signed_in, name="Ana Souza", bed="01")
        admit(signed_in, name="Pedro Lima", bed="02")

        text = render(process_input(signed_in, "report bed=02"))
        assert "Pedro Lima" in text
        assert "Ana Souza" not in text
        assert "1 patient(s)" in text

    def test_report_bad_range(self, signed_in):
        with pytest.raises(CommandError):
            process_input(signed_in, "report start=2024-02-10 end=2024-02-01")

    def test_export_writes_pdf(self, signed_in):
        admit(signed_in)
        output = process_input(signed_in, "export status=admitted")

        exported = list(signed_in.export_dir.glob("report_*.pdf"))
        assert len(exported) == 1
        assert "1 patient(s)" in output


class TestMarkupInRecords:
    """Names holding rich markup characters are shown verbatim."""

    def test_admit_name_with_brackets(self, signed_in):
        line = (
            f'admit name="Ana [/] Souza" birth={born_years_ago(6, 10)} gender=F '
            f'mother="Maria [bold]" bed=01 entry=2024-02-01'
        )
        text = render(process_input(signed_in, line))

        assert "Ana [/] Souza" in text

    def test_listing_and_details(self, signed_in):
        patient = admit(signed_in, name="Ana [/] Souza")

        assert "Ana [/] Souza" in render(process_input(signed_in, "patients"))
        assert "Ana [/] Souza" in render(process_input(signed_in, f"show {patient.id}"))
        assert "Ana [/] Souza" in render(process_input(signed_in, "report"))
        assert "Ana [/] Souza" in render(process_input(signed_in, f"discharge {patient.id} 2024-02-03"))
