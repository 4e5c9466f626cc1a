import pytest
from sqlalchemy.exc import NoResultFound

from compliance_app.importer.pipeline import ImportBatchService
from compliance_app.models import RowOutcomeKind


@pytest.fixture
def recorded_batches(coordinator):
    employees = coordinator.process(
        [
            {"employee_id": "3001", "name": "Dewi", "department": "OPS"},
            {"employee_id": "3002", "name": ""},
        ],
        subject="employees",
        source_name="staff.csv",
    )
    departments = coordinator.process([{"code": "FIN", "name": "Finance"}], subject="departments")
    return employees, departments


def test_list_batches_newest_first_with_filters(recorded_batches):
    employees, departments = recorded_batches
    service = ImportBatchService()

    listed = service.list_batches()
    assert [summary.batch_id for summary in listed] == [departments.batch_id, employees.batch_id]

    only_employees = service.list_batches(subject="employees")
    assert len(only_employees) == 1
    summary = only_employees[0]
    assert summary.source_name == "staff.csv"
    assert summary.status == "succeeded"
    assert summary.counts["created"] == 1
    assert summary.counts["errors"] == 1
    assert summary.as_dict()["finished_at"] is not None

    assert service.list_batches(status="failed") == []
    assert len(service.list_batches(limit=0)) == 1


def test_unknown_status_filter_is_rejected(recorded_batches):
    with pytest.raises(ValueError):
        ImportBatchService().list_batches(status="bogus")


def test_outcomes_can_be_filtered_by_kind(recorded_batches):
    employees, _ = recorded_batches
    service = ImportBatchService()

    everything = service.outcomes(employees.batch_id)
    errors = service.outcomes(employees.batch_id, outcome="error")

    assert [row.row_number for row in everything] == [2, 3]
    assert len(errors) == 1
    assert errors[0].outcome == RowOutcomeKind.ERROR
    assert errors[0].row_number == 3


def test_missing_batch_raises(recorded_batches):
    with pytest.raises(NoResultFound, match="Import batch missing not found"):
        ImportBatchService().get_batch("missing")


def test_status_counts(recorded_batches):
    assert ImportBatchService().status_counts() == {"succeeded": 2}
