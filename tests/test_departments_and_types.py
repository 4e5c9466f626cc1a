from compliance_app.models import CertificateType, Department, RowOutcomeKind


def test_departments_link_to_parents_in_the_same_upload(coordinator):
    report = coordinator.process(
        [
            {"Kode": "OPS", "Nama Departemen": "Operations"},
            {"Kode": "RAMP", "Nama Departemen": "Ramp Handling", "Parent": "Operations"},
        ],
        subject="departments",
    )

    ramp = Department.query.filter_by(code="RAMP").one()
    assert report.created == 2
    assert ramp.parent.code == "OPS"
    assert report.outcomes[1].detail == "RAMP Ramp Handling"


def test_department_without_code_gets_generated_code(coordinator):
    coordinator.process([{"name": "Ground Support"}], subject="departments")

    assert Department.query.one().code == "GROUND"


def test_parent_cycle_is_rejected(coordinator):
    coordinator.process(
        [
            {"code": "OPS", "name": "Operations"},
            {"code": "RAMP", "name": "Ramp Handling", "parent_code": "OPS"},
        ],
        subject="departments",
    )

    report = coordinator.process(
        [{"code": "OPS", "name": "Operations", "parent_code": "RAMP"}],
        subject="departments",
        options=coordinator.options(update_existing=True),
    )

    assert report.outcomes[0].outcome == RowOutcomeKind.ERROR
    assert report.outcomes[0].detail == "Parent assignment would create a cycle"
    assert Department.query.filter_by(code="OPS").one().parent_id is None


def test_department_cannot_be_its_own_parent(coordinator, operations_department):
    report = coordinator.process(
        [{"code": "OPS", "name": "Operations", "parent_code": "OPS"}],
        subject="departments",
        options=coordinator.options(update_existing=True),
    )

    assert report.outcomes[0].detail == "A department cannot be its own parent"


def test_new_department_naming_itself_as_parent_is_rejected(coordinator):
    report = coordinator.process([{"name": "Airside", "parent_name": "airside"}], subject="departments")

    assert report.outcomes[0].outcome == RowOutcomeKind.ERROR
    assert report.outcomes[0].detail == "A department cannot be its own parent"
    assert Department.query.count() == 0


def test_cycle_through_a_parent_changed_earlier_in_the_batch(coordinator):
    coordinator.process(
        [{"code": "RAMP", "name": "Ramp Handling"}, {"code": "APRON", "name": "Apron Control"}],
        subject="departments",
    )

    report = coordinator.process(
        [
            {"code": "APRON", "name": "Apron Control", "parent_code": "RAMP"},
            {"code": "RAMP", "name": "Ramp Handling", "parent_code": "APRON"},
        ],
        subject="departments",
        options=coordinator.options(update_existing=True),
    )

    assert [outcome.outcome for outcome in report.outcomes] == [RowOutcomeKind.UPDATED, RowOutcomeKind.ERROR]
    assert report.outcomes[1].detail == "Parent assignment would create a cycle"
    ramp = Department.query.filter_by(code="RAMP").one()
    assert Department.query.filter_by(code="APRON").one().parent is ramp
    assert ramp.parent_id is None


def test_department_update_reparents_and_deactivates(coordinator, operations_department):
    coordinator.process([{"code": "RAMP", "name": "Ramp Handling"}], subject="departments")

    report = coordinator.process(
        [{"code": "RAMP", "name": "Ramp Handling", "parent_code": "OPS", "status": "nonaktif"}],
        subject="departments",
        options=coordinator.options(update_existing=True),
    )

    ramp = Department.query.filter_by(code="RAMP").one()
    assert report.outcomes[0].changed_fields == ("is_active", "parent")
    assert ramp.parent_id == operations_department.id
    assert ramp.is_active is False


def test_certificate_types_are_created_with_defaults(coordinator):
    report = coordinator.process(
        [
            {"Kode Training": "k3umum", "Nama Training": "K3 Umum", "Masa Berlaku": "12", "Wajib": "ya"},
            {"Nama Training": "Basic Fire Fighting", "Kategori": "Safety"},
        ],
        subject="certificate_types",
    )

    k3 = CertificateType.query.filter_by(code="K3UMUM").one()
    fire = CertificateType.query.filter_by(code="BASICFIR").one()
    assert report.created == 2
    assert k3.validity_months == 12
    assert k3.warning_days == 30
    assert k3.is_mandatory is True
    assert k3.is_recurrent is True
    assert fire.validity_months is None
    assert fire.is_mandatory is False
    assert fire.category == "Safety"


def test_certificate_type_validation(coordinator):
    report = coordinator.process(
        [
            {"code": "A1", "name": "First Aid", "warning_days": "-5"},
            {"code": "CR", "name": "Crane", "validity_months": "0"},
        ],
        subject="certificate_types",
    )

    assert report.outcomes[0].outcome == RowOutcomeKind.ERROR
    assert report.outcomes[0].detail == "warning_days cannot be negative"
    assert report.outcomes[1].outcome == RowOutcomeKind.CREATED
    assert report.outcomes[1].warnings == ("Ignoring non-positive validity period 0",)
    assert CertificateType.query.filter_by(code="CR").one().validity_months is None


def test_certificate_type_update_by_code(coordinator, safety_type):
    report = coordinator.process(
        [{"code": "K3UMUM", "name": "K3 Umum", "validity_months": "24", "warning_days": "60"}],
        subject="certificate_types",
        options=coordinator.options(update_existing=True),
    )

    assert report.outcomes[0].changed_fields == ("validity_months", "warning_days")
    assert safety_type.validity_months == 24
    assert safety_type.warning_days == 60
