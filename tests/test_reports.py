"""Tests for report filtering, export and the dashboard summary."""

from datetime import datetime

import pytest

from pediatric_ward.reports import (
    ReportFilter,
    ReportRow,
    StatusFilter,
    build_pdf,
    export_filename,
    export_rows,
    filter_patients,
    ward_summary,
    write_pdf,
)


def ids(patients):
    return {p.id for p in patients}


@pytest.fixture
def patients(repo, ward):
    return repo.find()


class TestFilterPatients:
    """Tests for the combined report filter."""

    def test_no_filter_returns_everything(self, patients):
        assert filter_patients(patients) == patients
        assert filter_patients(patients, ReportFilter()) == patients

    def test_by_bed(self, patients, ward):
        assert ids(filter_patients(patients, ReportFilter(bed="01"))) == {ward["P1"].id, ward["P3"].id}

    def test_by_discharged_status(self, patients, ward):
        found = filter_patients(patients, ReportFilter(status=StatusFilter.DISCHARGED))
        assert ids(found) == {ward["P2"].id}

    def test_by_admitted_status_string(self, patients, ward):
        found = filter_patients(patients, ReportFilter(status="admitted"))
        assert ids(found) == {ward["P1"].id, ward["P3"].id}

    def test_unknown_status_rejected(self, patients):
        with pytest.raises(ValueError):
            filter_patients(patients, ReportFilter(status="pending"))

    def test_by_antibiotic(self, patients, ward):
        found = filter_patients(patients, ReportFilter(antibiotic="Amoxicilina"))
        assert ids(found) == {ward["P3"].id}

    def test_search_matches_name_or_mother(self, patients, ward):
        assert ids(filter_patients(patients, ReportFilter(search="ALICE"))) == {ward["P2"].id}
        assert ids(filter_patients(patients, ReportFilter(search="luiza"))) == {ward["P1"].id}

    def test_search_ignores_diagnosis(self, patients):
        assert filter_patients(patients, ReportFilter(search="pneumonia")) == []

    def test_predicates_are_anded(self, patients, ward):
        found = filter_patients(patients, ReportFilter(bed="01", antibiotic="Ceftriaxona", status="admitted"))
        assert ids(found) == {ward["P1"].id}

    def test_date_range_bounds_inclusive(self, patients, ward):
        found = filter_patients(patients, ReportFilter(start_date="2024-02-01", end_date="2024-02-05"))
        assert ids(found) == {ward["P1"].id, ward["P2"].id}

        found = filter_patients(patients, ReportFilter(start_date="2024-02-10", end_date="2024-02-10"))
        assert ids(found) == {ward["P3"].id}

    def test_single_bound_is_ignored(self, patients):
        assert len(filter_patients(patients, ReportFilter(start_date="2030-01-01"))) == 3
        assert len(filter_patients(patients, ReportFilter(end_date="2000-01-01"))) == 3

    def test_reversed_range_rejected(self, patients):
        with pytest.raises(ValueError, match="after the end date"):
            filter_patients(patients, ReportFilter(start_date="2024-02-10", end_date="2024-02-01"))

    def test_keeps_input_order(self, patients):
        reversed_input = list(reversed(patients))
        assert filter_patients(reversed_input, ReportFilter(bed="01")) == [
            p for p in reversed_input if p.bed == "01"
        ]


class TestExport:
    """Tests for the export projection and PDF output."""

    def test_export_rows(self, ward):
        rows = export_rows([ward["P2"], ward["P3"]])

        assert rows == [
            ReportRow(name="Alice Nunes", entry_date="05/02/2024", status="Discharged", bed="02", diagnosis="Pneumonia"),
            ReportRow(name="Pedro Lima", entry_date="10/02/2024", status="Admitted", bed="01", diagnosis="Pneumonia"),
        ]

    def test_export_filename_from_timestamp(self):
        now = datetime(2024, 2, 10, 14, 30)
        assert export_filename(now) == f"report_{int(now.timestamp() * 1000)}.pdf"

    def test_build_pdf(self, ward):
        pdf = build_pdf(export_rows(list(ward.values())), generated_at=datetime(2024, 2, 10, 14, 30))
        assert pdf.startswith(b"%PDF")

    def test_build_pdf_with_markup_characters(self):
        rows = [ReportRow("Ana & <Bia>", "01/02/2024", "Admitted", "Nebulização", "")]
        assert build_pdf(rows).startswith(b"%PDF")

    def test_write_pdf(self, tmp_path, ward):
        now = datetime(2024, 2, 10, 14, 30)
        path = write_pdf(export_rows(list(ward.values())), tmp_path / "exports", now=now)

        assert path.name == export_filename(now)
        assert path.read_bytes().startswith(b"%PDF")


class TestWardSummary:
    """Tests for the dashboard counts."""

    def test_counts(self, repo, ward, make_patient):
        repo.save(make_patient(name="Theo Dias", gender="M", bed="ECG"))
        summary = ward_summary(repo.find(), capacity=12)

        assert summary.total == 4
        assert summary.admitted == 3
        assert summary.discharged == 1
        assert summary.female == 3
        assert summary.male == 1
        assert summary.occupancy_percent == 25
        assert summary.beds == {"01": 2, "ECG": 1}

    def test_empty_ward(self):
        summary = ward_summary([], capacity=0)
        assert summary.total == 0
        assert summary.occupancy_percent == 0
        assert summary.beds == {}
