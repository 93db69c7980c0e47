# =============================================================================
# core/assembler.py - Enrollment record assembly
# =============================================================================

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from core.models import EnrollmentSettings, InventoryRow, Machine, MatchRow

EMPLOYEE_TYPES = ("Personnel", "Hôte", "Hors-EPFL")
DEVICE_TYPES = ("Laptop", "Workstation", "Mobile")
VPN_OPTIONS = ("SSC", "AGA")
FILEMAKER_OPTIONS = ("TTO-AJ", "OHSPR-DSE", "Autres")
TABLEAU_OPTIONS = ("Desktop", "Prep")

DEVICE_LOCATION_GROUPS = {
    "Laptop": "628",
    "Workstation": "629",
    "Mobile": "627",
}
DEFAULT_DEVICE_LOCATION_GROUP = DEVICE_LOCATION_GROUPS["Laptop"]

logger = logging.getLogger(__name__)


class MachineValidationError(ValueError):
    """Raised when a manually entered machine lacks required fields"""

    def __init__(self, missing_fields: Sequence[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing required fields: {', '.join(self.missing_fields)}")


def location_group_for_device(device_type: Optional[str]) -> str:
    """Location group id for a device type; unknown types fall back to the laptop group"""
    return DEVICE_LOCATION_GROUPS.get(device_type or "", DEFAULT_DEVICE_LOCATION_GROUP)


def assemble_machine(result: MatchRow, inventory_row: InventoryRow,
                     settings: EnrollmentSettings) -> Machine:
    """Build the enrollment record for one correlated pair"""
    return Machine(
        end_user_name=result.username,
        asset_number=inventory_row.inventory_number,
        location_group_id=settings.location_group_id,
        message_type=settings.message_type,
        serial_number=result.serialnumber,
        platform_id=settings.platform_id,
        friendly_name=result.computername,
        ownership=settings.ownership
    )


def assemble_machines(pairs: Iterable[Tuple[MatchRow, InventoryRow]],
                      settings: EnrollmentSettings) -> List[Machine]:
    """Build one record per correlated pair from a single settings snapshot"""
    machines = [assemble_machine(result, inventory_row, settings) for result, inventory_row in pairs]
    logger.info(f"Assembled {len(machines)} machine(s)")
    return machines


def build_manual_machine(settings: EnrollmentSettings, *,
                         end_user_name: str,
                         asset_number: str,
                         serial_number: str,
                         friendly_name: str,
                         employee_type: Optional[str],
                         device_type: Optional[str],
                         sciper: str = "",
                         vpn: Optional[str] = None,
                         filemaker: Optional[str] = None,
                         tableau: Iterable[str] = (),
                         mindmanager: bool = False,
                         lina_exception: bool = False,
                         acrobat_reader_exception: bool = False) -> Machine:
    """Build a record from a manual single-machine entry"""
    required = [
        ('end_user_name', end_user_name),
        ('asset_number', asset_number),
        ('serial_number', serial_number),
        ('friendly_name', friendly_name),
        ('employee_type', employee_type),
        ('device_type', device_type),
    ]
    missing = [name for name, value in required if not value]
    if missing:
        raise MachineValidationError(missing)

    tableau = set(tableau)

    # Staff never get the Acrobat exception
    if employee_type == "Personnel":
        acrobat_reader_exception = False

    return Machine(
        end_user_name=end_user_name,
        asset_number=asset_number,
        location_group_id=location_group_for_device(device_type),
        message_type=settings.message_type,
        serial_number=serial_number,
        platform_id=settings.platform_id,
        friendly_name=friendly_name,
        ownership=settings.ownership,
        employee_type=employee_type or "",
        vpn_select=vpn or "",
        tableau_desktop="Desktop" in tableau,
        tableau_prep="Prep" in tableau,
        filemaker=filemaker or "",
        mindmanager=mindmanager,
        lina_exception=lina_exception,
        acrobat_reader_exception=acrobat_reader_exception,
        devicetype=device_type or "",
        sciper=sciper
    )
