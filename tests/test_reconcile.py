import pytest

from compliance_app.importer.pipeline import SyncReconciler
from compliance_app.importer.pipeline.strategies import CertificateRecordStrategy, EmployeeStrategy
from compliance_app.models import Department, Employee, EmployeeStatus, RowOutcomeKind, db


@pytest.fixture
def staff():
    for employee_id, name in (("A", "Ani"), ("B", "Budi"), ("C", "Citra")):
        db.session.add(Employee(employee_id=employee_id, nip=employee_id, name=name, status=EmployeeStatus.ACTIVE))
    db.session.commit()


def _status_of(employee_id):
    return Employee.query.filter_by(employee_id=employee_id).one().status


def _upload_a_and_b():
    return [{"employee_id": "A", "name": "Ani"}, {"employee_id": "B", "name": "Budi"}]


def test_replace_soft_deletes_absent_entities(coordinator, staff):
    report = coordinator.process(
        _upload_a_and_b(),
        subject="employees",
        options=coordinator.options(sync_mode="replace"),
    )

    assert _status_of("A") == EmployeeStatus.ACTIVE
    assert _status_of("B") == EmployeeStatus.ACTIVE
    assert _status_of("C") == EmployeeStatus.INACTIVE
    assert [(action.natural_key, action.action) for action in report.sync_actions] == [("C", "deactivated")]
    assert report.skipped == 2
    assert report.updated == 1
    assert report.processed == 3


def test_replace_hard_delete_removes_absent_entities(coordinator, staff):
    report = coordinator.process(
        _upload_a_and_b(),
        subject="employees",
        options=coordinator.options(sync_mode="replace", soft_delete=False),
    )

    assert Employee.query.filter_by(employee_id="C").first() is None
    assert Employee.query.count() == 2
    assert report.sync_actions[0].action == "deleted"


def test_replace_dry_run_reports_without_changing(coordinator, staff):
    report = coordinator.process(
        _upload_a_and_b(),
        subject="employees",
        options=coordinator.options(sync_mode="replace", dry_run=True),
    )

    assert report.sync_actions[0].natural_key == "C"
    assert _status_of("C") == EmployeeStatus.ACTIVE


@pytest.mark.parametrize("sync_mode", ["merge", "update_only"])
def test_other_modes_leave_absent_entities_alone(coordinator, staff, sync_mode):
    report = coordinator.process(
        _upload_a_and_b(),
        subject="employees",
        options=coordinator.options(sync_mode=sync_mode),
    )

    assert report.sync_actions == []
    assert _status_of("C") == EmployeeStatus.ACTIVE


def test_replace_with_nothing_processed_is_a_no_op(coordinator, staff):
    report = coordinator.process(
        [{"employee_id": "D", "name": ""}],
        subject="employees",
        options=coordinator.options(sync_mode="replace"),
    )

    assert report.outcomes[0].outcome == RowOutcomeKind.ERROR
    assert report.sync_actions == []
    assert "Reconciliation skipped" in report.batch_warnings[0]
    assert Employee.query.filter_by(status=EmployeeStatus.ACTIVE).count() == 3


def test_replace_departments_deactivates_missing_ones(coordinator, operations_department):
    db.session.add(Department(code="HR", name="Human Resources", is_active=True))
    db.session.commit()

    report = coordinator.process(
        [{"code": "OPS", "name": "Operations"}],
        subject="departments",
        options=coordinator.options(sync_mode="replace"),
    )

    assert [action.natural_key for action in report.sync_actions] == ["HR"]
    assert Department.query.filter_by(code="HR").one().is_active is False


def test_replace_is_not_applied_to_certificate_records(coordinator, sample_employee, safety_type):
    report = coordinator.process(
        [{"NIP": "EMP001", "Nama": "Siti Rahma", "Training Name": "K3 Umum", "Issue Date": "2024-01-15"}],
        subject="certificate_records",
        options=coordinator.options(sync_mode="replace"),
    )

    assert report.created == 1
    assert report.sync_actions == []
    assert report.batch_warnings == [
        "sync_mode=replace does not apply to certificate_records; stored records were left untouched"
    ]


def test_reconciler_lists_missing_entities(staff):
    reconciler = SyncReconciler(db.session)

    missing = reconciler.missing(EmployeeStrategy(), {"A"})

    assert sorted(employee.employee_id for employee in missing) == ["B", "C"]


def test_reconciler_rejects_non_reconcilable_subjects(coordinator):
    reconciler = SyncReconciler(db.session)

    with pytest.raises(ValueError, match="does not support reconciliation"):
        reconciler.reconcile(CertificateRecordStrategy(), {"x"}, report=None)


@pytest.mark.parametrize("parent", [{"parent_code": "OPS"}, {"parent_name": "Operations"}])
def test_replace_keeps_parents_referenced_by_the_upload(coordinator, operations_department, parent):
    db.session.add(Department(code="HR", name="Human Resources", is_active=True))
    db.session.commit()

    report = coordinator.process(
        [{"code": "RAMP", "name": "Ramp Handling", **parent}],
        subject="departments",
        options=coordinator.options(sync_mode="replace"),
    )

    assert [action.natural_key for action in report.sync_actions] == ["HR"]
    assert Department.query.filter_by(code="OPS").one().is_active is True
    assert Department.query.filter_by(code="RAMP").one().parent_id == operations_department.id


def test_replace_keeps_parent_of_a_skipped_row(coordinator, operations_department):
    db.session.add(Department(code="RAMP", name="Ramp Handling", parent_id=operations_department.id, is_active=True))
    db.session.commit()

    report = coordinator.process(
        [{"code": "RAMP", "name": "Ramp Handling", "parent_code": "OPS"}],
        subject="departments",
        options=coordinator.options(sync_mode="replace"),
    )

    assert report.outcomes[0].detail == "already exists"
    assert report.sync_actions == []
    assert Department.query.filter_by(is_active=True).count() == 2


def test_replace_keeps_parent_created_from_the_upload(coordinator):
    db.session.add(Department(code="HR", name="Human Resources", is_active=True))
    db.session.commit()

    report = coordinator.process(
        [{"code": "APRON", "name": "Apron Control", "parent_name": "Airside"}],
        subject="departments",
        options=coordinator.options(sync_mode="replace"),
    )

    airside = Department.query.filter_by(name="Airside").one()
    assert airside.is_active is True
    assert Department.query.filter_by(code="APRON").one().parent_id == airside.id
    assert [action.natural_key for action in report.sync_actions] == ["HR"]
