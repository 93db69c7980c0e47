import json
import threading

from core.dispatcher import UploadDispatcher
from core.models import Machine
from core.samba_client import TransportError
from utils.config import ConfigMissing


def make_machine(asset_number: str) -> Machine:
    return Machine(
        end_user_name="John Doe",
        asset_number=asset_number,
        location_group_id="G1",
        message_type=0,
        serial_number=f"SN-{asset_number}",
        platform_id=12,
        friendly_name=f"PC-{asset_number}",
        ownership="C",
    )


class FakeTransport:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.saved = {}
        self.opened = 0
        self.closed = 0
        self.lock = threading.Lock()

    def open(self):
        self.opened += 1

    def close(self):
        self.closed += 1

    def save(self, filename, content):
        if filename in self.failing:
            raise TransportError(f"Error while sending the file: {filename}")
        with self.lock:
            self.saved[filename] = content
        return f"File saved successfully to {filename}"


def test_all_succeed_and_list_is_emptied():
    transport = FakeTransport()
    machines = [make_machine("INV-1"), make_machine("INV-2")]

    summary = UploadDispatcher(lambda: transport).send(machines)

    assert summary.sent == 2
    assert summary.total == 2
    assert summary.failed == 0
    assert summary.remaining == []
    assert summary.message.startswith("2 file(s) saved out of 2.")
    assert json.loads(transport.saved["scx-INV-1.json"])["AssetNumber"] == "INV-1"
    assert transport.opened == 1
    assert transport.closed == 1


def test_failed_machines_are_kept():
    transport = FakeTransport(failing={"scx-INV-2.json"})
    machines = [make_machine("INV-1"), make_machine("INV-2"), make_machine("INV-3")]

    summary = UploadDispatcher(lambda: transport, max_workers=2).send(machines)

    assert summary.sent == 2
    assert [machine.asset_number for machine in summary.remaining] == ["INV-2"]
    failed = [result for result in summary.results if not result.success]
    assert [result.filename for result in failed] == ["scx-INV-2.json"]


def test_missing_configuration_keeps_every_machine():
    def factory():
        raise ConfigMissing(["ENROLL_SAMBA_PATH"])

    machines = [make_machine("INV-1"), make_machine("INV-2")]

    summary = UploadDispatcher(factory).send(machines)

    assert summary.sent == 0
    assert summary.remaining == machines
    assert all("ENROLL_SAMBA_PATH" in result.message for result in summary.results)


def test_progress_reports_each_completion():
    calls = []
    machines = [make_machine(f"INV-{index}") for index in range(5)]

    UploadDispatcher(lambda: FakeTransport()).send(
        machines, progress_callback=lambda done, total: calls.append((done, total))
    )

    assert calls == [(done, 5) for done in range(1, 6)]


def test_empty_list_sends_nothing():
    summary = UploadDispatcher(lambda: FakeTransport()).send([])

    assert summary.total == 0
    assert summary.message == "No machine to send."
