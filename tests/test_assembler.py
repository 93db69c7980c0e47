import pytest

from core.assembler import (
    MachineValidationError, assemble_machine, assemble_machines, build_manual_machine,
    location_group_for_device
)
from core.models import EnrollmentSettings, InventoryRow, MatchRow

SETTINGS = EnrollmentSettings(location_group_id="G1", platform_id=12, message_type=0, ownership="C")


def manual(**overrides):
    values = dict(
        end_user_name="jdoe",
        asset_number="A-1",
        serial_number="SN1",
        friendly_name="PC-1",
        employee_type="Hôte",
        device_type="Workstation",
    )
    values.update(overrides)
    return build_manual_machine(SETTINGS, **values)


def test_assemble_machine_maps_fields_and_constants():
    result = MatchRow(name="jdoe", computername="PC-JDOE-01", username="John Doe", serialnumber="ABC123456")
    row = InventoryRow(serial_number="XYZ123456", inventory_number="INV-42")

    machine = assemble_machine(result, row, SETTINGS)

    assert machine.end_user_name == "John Doe"
    assert machine.asset_number == "INV-42"
    assert machine.serial_number == "ABC123456"
    assert machine.friendly_name == "PC-JDOE-01"
    assert machine.location_group_id == "G1"
    assert machine.platform_id == 12
    assert machine.message_type == 0
    assert machine.ownership == "C"
    assert machine.payload_filename == "scx-INV-42.json"


def test_assemble_machines_gives_distinct_ids():
    result = MatchRow("jdoe", "PC", "John", "SN")
    pairs = [(result, InventoryRow("SN", "I1")), (result, InventoryRow("SN", "I2"))]

    machines = assemble_machines(pairs, SETTINGS)

    assert [machine.asset_number for machine in machines] == ["I1", "I2"]
    assert machines[0].id != machines[1].id


@pytest.mark.parametrize("device_type,group", [
    ("Laptop", "628"),
    ("Workstation", "629"),
    ("Mobile", "627"),
    ("Tablet", "628"),
    (None, "628"),
])
def test_location_group_for_device(device_type, group):
    assert location_group_for_device(device_type) == group


def test_manual_machine_uses_device_group_and_selections():
    machine = manual(vpn="SSC", filemaker="Autres", tableau=["Prep"], mindmanager=True, sciper="123456")

    assert machine.location_group_id == "629"
    assert machine.devicetype == "Workstation"
    assert machine.vpn_select == "SSC"
    assert machine.filemaker == "Autres"
    assert machine.tableau_prep
    assert not machine.tableau_desktop
    assert machine.mindmanager
    assert machine.sciper == "123456"
    assert machine.platform_id == SETTINGS.platform_id


def test_manual_machine_reports_missing_fields():
    with pytest.raises(MachineValidationError) as excinfo:
        manual(end_user_name="", device_type=None)

    assert excinfo.value.missing_fields == ["end_user_name", "device_type"]


def test_acrobat_exception_forced_off_for_staff():
    assert not manual(employee_type="Personnel", acrobat_reader_exception=True).acrobat_reader_exception
    assert manual(employee_type="Hors-EPFL", acrobat_reader_exception=True).acrobat_reader_exception
