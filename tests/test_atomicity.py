import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from compliance_app.importer.errors import PersistenceError
from compliance_app.importer.pipeline.strategies import EmployeeStrategy
from compliance_app.models import Department, Employee, ImportBatch, ImportBatchStatus, ImportRowOutcome, db


def _rows(count):
    return [{"employee_id": f"{1000 + n}", "name": f"Employee {n}", "department": "RAMP"} for n in range(count)]


def _fail_on_call(monkeypatch, call_number, error):
    original_create = EmployeeStrategy.create
    calls = {"count": 0}

    def create(self, payload, refs, ctx):
        calls["count"] += 1
        if calls["count"] == call_number:
            raise error
        return original_create(self, payload, refs, ctx)

    monkeypatch.setattr(EmployeeStrategy, "create", create)


def test_storage_failure_rolls_back_the_whole_batch(coordinator, monkeypatch):
    _fail_on_call(monkeypatch, 3, OperationalError("INSERT INTO employees", {}, Exception("disk I/O error")))

    with pytest.raises(PersistenceError) as excinfo:
        coordinator.process(_rows(5), subject="employees")

    assert Employee.query.count() == 0
    assert Department.query.count() == 0
    assert ImportRowOutcome.query.count() == 0

    batch = ImportBatch.query.one()
    assert batch.status == ImportBatchStatus.FAILED
    assert "disk I/O error" in batch.error_summary
    assert batch.finished_at is not None

    error = excinfo.value
    assert error.batch_id == batch.batch_id
    assert error.report.status == ImportBatchStatus.FAILED
    assert [outcome.row_number for outcome in error.report.outcomes] == [2, 3]


def test_unexpected_errors_fail_the_batch_and_propagate(coordinator, monkeypatch):
    _fail_on_call(monkeypatch, 2, RuntimeError("boom"))

    with pytest.raises(RuntimeError, match="boom"):
        coordinator.process(_rows(3), subject="employees")

    assert Employee.query.count() == 0
    assert ImportBatch.query.one().status == ImportBatchStatus.FAILED


def test_later_batches_still_succeed_after_a_failure(coordinator, monkeypatch):
    _fail_on_call(monkeypatch, 1, OperationalError("INSERT", {}, Exception("locked")))
    with pytest.raises(PersistenceError):
        coordinator.process(_rows(1), subject="employees")
    monkeypatch.undo()

    report = coordinator.process(_rows(2), subject="employees")

    assert report.created == 2
    assert Employee.query.count() == 2
    assert ImportBatch.query.filter_by(status=ImportBatchStatus.SUCCEEDED).count() == 1


def test_constraint_violation_on_flush_rolls_back_earlier_rows(coordinator):
    db.session.execute(text("CREATE UNIQUE INDEX uq_employees_email ON employees (email)"))
    db.session.commit()
    rows = _rows(4)
    for n, row in enumerate(rows):
        row["email"] = f"employee{n}@example.com"
    rows[2]["email"] = "employee0@example.com"

    with pytest.raises(PersistenceError) as excinfo:
        coordinator.process(rows, subject="employees")

    assert isinstance(excinfo.value.__cause__, IntegrityError)
    assert Employee.query.count() == 0
    assert Department.query.count() == 0
    assert ImportRowOutcome.query.count() == 0

    batch = ImportBatch.query.one()
    assert batch.status == ImportBatchStatus.FAILED
    assert "UNIQUE constraint failed" in batch.error_summary
    assert [outcome.row_number for outcome in excinfo.value.report.outcomes] == [2, 3]
