# =============================================================================
# core/machine_list.py - In-memory list of machines awaiting delivery
# =============================================================================

import logging
import uuid
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union

from core.models import Machine
from core.payload import dump_machines, load_machines

# Sort key -> machine attribute
SORT_KEYS = {
    'friendlyName': 'friendly_name',
    'endUserName': 'end_user_name',
    'assetNumber': 'asset_number',
    'locationGroupId': 'location_group_id',
    'serialNumber': 'serial_number',
}

# Compared as raw strings, the rest ignore case
CASE_SENSITIVE_SORT_KEYS = {'locationGroupId'}


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


class MachineList:
    """Ordered machines, addressed by their in-memory id"""

    def __init__(self, machines: Optional[Iterable[Machine]] = None):
        self._machines: List[Machine] = list(machines or [])
        self.sort_key: Optional[str] = None
        self.ascending = True
        self.logger = logging.getLogger(self.__class__.__name__)

    def __iter__(self) -> Iterator[Machine]:
        return iter(list(self._machines))

    def __len__(self) -> int:
        return len(self._machines)

    def __bool__(self) -> bool:
        return bool(self._machines)

    def add(self, machine: Machine) -> None:
        self._machines.append(machine)

    def extend(self, machines: Iterable[Machine]) -> int:
        machines = list(machines)
        self._machines.extend(machines)
        return len(machines)

    def get(self, machine_id: Union[str, uuid.UUID]) -> Optional[Machine]:
        machine_id = self._coerce_id(machine_id)
        return next((machine for machine in self._machines if machine.id == machine_id), None)

    def remove(self, machine_id: Union[str, uuid.UUID]) -> bool:
        """Remove one machine; False when the id is unknown"""
        return self.remove_selected([machine_id]) == 1

    def remove_at(self, indexes: Iterable[int]) -> int:
        """Remove machines by list position"""
        doomed = {index for index in indexes if 0 <= index < len(self._machines)}
        self._machines = [
            machine for index, machine in enumerate(self._machines) if index not in doomed
        ]
        return len(doomed)

    def remove_selected(self, machine_ids: Iterable[Union[str, uuid.UUID]]) -> int:
        """Remove every machine whose id is selected; returns how many went"""
        selected = {self._coerce_id(machine_id) for machine_id in machine_ids}
        before = len(self._machines)
        self._machines = [machine for machine in self._machines if machine.id not in selected]
        return before - len(self._machines)

    def clear(self) -> int:
        count = len(self._machines)
        self._machines = []
        return count

    def replace(self, machines: Iterable[Machine]) -> None:
        self._machines = list(machines)

    def sort_by(self, key: str) -> None:
        """Sort on key; sorting again on the current key flips the direction"""
        if key not in SORT_KEYS:
            raise KeyError(f"Unknown sort key: {key}")

        if key == self.sort_key:
            self.ascending = not self.ascending
        else:
            self.sort_key = key
            self.ascending = True

        self.apply_sort()

    def apply_sort(self) -> None:
        """Re-apply the current ordering, e.g. after machines were added"""
        if self.sort_key is None:
            return

        attribute = SORT_KEYS[self.sort_key]
        if self.sort_key in CASE_SENSITIVE_SORT_KEYS:
            sort_value = lambda machine: getattr(machine, attribute)
        else:
            sort_value = lambda machine: getattr(machine, attribute).casefold()

        self._machines.sort(key=sort_value, reverse=not self.ascending)

    def details(self, machine_id: Union[str, uuid.UUID]) -> Optional[Dict[str, Dict[str, str]]]:
        """Labelled view of one machine"""
        machine = self.get(machine_id)
        if machine is None:
            return None

        return {
            "General": {
                "End user name": machine.end_user_name,
                "SCIPER": machine.sciper,
                "Asset number": machine.asset_number,
                "Serial number": machine.serial_number,
                "Friendly name": machine.friendly_name,
            },
            "Selections": {
                "Employee type": machine.employee_type,
                "Device type": machine.devicetype,
                "VPN Guest": machine.vpn_select or "No selection",
                "FileMaker": machine.filemaker or "No selection",
                "TableauDesktop": _yes_no(machine.tableau_desktop),
                "TableauPrep": _yes_no(machine.tableau_prep),
                "MindManager": _yes_no(machine.mindmanager),
                # The flag records an opt-out
                "Lina": _yes_no(not machine.lina_exception),
                "Acrobat Pro exception": _yes_no(machine.acrobat_reader_exception),
            },
        }

    def save(self, path: Union[str, Path]) -> None:
        """Persist the list as a JSON array of payloads"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_machines(self._machines), encoding='utf-8')
        self.logger.info(f"Saved {len(self._machines)} machine(s) to {path}")

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'MachineList':
        """Load a list saved by save(); a missing file gives an empty list"""
        path = Path(path)
        if not path.exists():
            return cls()
        return cls(load_machines(path.read_text(encoding='utf-8')))

    @staticmethod
    def _coerce_id(machine_id: Union[str, uuid.UUID]) -> Optional[uuid.UUID]:
        if isinstance(machine_id, uuid.UUID):
            return machine_id
        try:
            return uuid.UUID(str(machine_id))
        except ValueError:
            return None
