"""Tests des modeles / Model tests."""

from custody.models.device import Device, DeviceStatus, DeviceType
from custody.models.handover import HandoverAction, HandoverBatch
from custody.models.person import Person, PersonRole


def test_device_status_enum():
    assert DeviceStatus.AVAILABLE.value == "AVAILABLE"
    assert DeviceStatus.ISSUED.value == "ISSUED"
    assert {s.value for s in DeviceStatus} == {"AVAILABLE", "ISSUED", "LOST", "BROKEN", "IN_SERVICE"}


def test_device_type_enum():
    assert DeviceType.PDA.value == "PDA"
    assert DeviceType.MOBILE_PRINTER.value == "MOBILE_PRINTER"


def test_roles_have_no_dispatcher():
    assert {r.value for r in PersonRole} == {"ADMIN", "COURIER"}


def test_handover_action_enum():
    assert HandoverAction.ISSUE.value == "ISSUE"
    assert HandoverAction.RETURN.value == "RETURN"


def test_device_repr():
    device = Device(asset_tag="A-100", type=DeviceType.PDA)
    assert repr(device) == "<Device A-100>"


def test_batch_repr():
    batch = HandoverBatch(id=7, action_type=HandoverAction.RETURN)
    assert repr(batch) == "<HandoverBatch 7 RETURN>"


def test_person_display_name():
    assert Person(full_name="Casey Courier", role=PersonRole.COURIER).display_name == "Casey Courier"
    assert Person(email="ops@example.com", role=PersonRole.ADMIN).display_name == "ops@example.com"
    assert Person(role=PersonRole.COURIER).display_name is None
