# =============================================================================
# core/models.py - Unified data models
# =============================================================================

import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from enum import Enum


class DiscrepancyKind(Enum):
    """Classification of a roster name that cannot be enrolled"""
    DUPLICATE = "duplicate"
    MISSING = "missing"


@dataclass(frozen=True)
class RosterEntry:
    """Name token from the roster file"""
    name: str


@dataclass(frozen=True)
class AssetExportRow:
    """Row of the asset-management export"""
    computer_name: str
    serial_number: str
    user_name: str


@dataclass(frozen=True)
class InventoryRow:
    """Row of the inventory export; unused columns kept in extra"""
    serial_number: str
    inventory_number: str
    extra: Dict[str, str] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class MatchRow:
    """Asset row matched by a roster name"""
    name: str
    computername: str
    username: str
    serialnumber: str


@dataclass(frozen=True)
class DiscrepancyRow:
    """Duplicate or missing roster name, in report shape"""
    kind: DiscrepancyKind
    name: str
    computername: str = ""

    def as_dict(self) -> Dict[str, str]:
        if self.kind is DiscrepancyKind.DUPLICATE:
            return {'computername': self.computername, 'name': self.name}
        return {'name': self.name}


@dataclass
class EnrollmentSettings:
    """Snapshot of the constant fields merged into every record"""
    location_group_id: str = "DefaultGroup"
    platform_id: int = 12
    message_type: int = 0
    ownership: str = "C"
    samba_path: Optional[str] = None
    test_mode: bool = True


@dataclass
class Machine:
    """Enrollment record for one device"""
    end_user_name: str
    asset_number: str
    location_group_id: str
    message_type: int
    serial_number: str
    platform_id: int
    friendly_name: str
    ownership: str
    employee_type: str = ""
    vpn_select: str = ""
    tableau_desktop: bool = False
    tableau_prep: bool = False
    filemaker: str = ""
    mindmanager: bool = False
    lina_exception: bool = False
    acrobat_reader_exception: bool = False
    devicetype: str = ""
    sciper: str = ""
    id: uuid.UUID = field(default_factory=uuid.uuid4, compare=False)

    @property
    def payload_filename(self) -> str:
        return f"scx-{self.asset_number}.json"


@dataclass
class MatchOutcome:
    """Output of the name matcher"""
    buckets: Dict[str, List[str]] = field(default_factory=dict)
    results: List[MatchRow] = field(default_factory=list)


@dataclass
class ImportStats:
    """Statistics for an import run"""
    roster_rows: int = 0
    asset_rows: int = 0
    inventory_rows: int = 0
    dropped_rows: int = 0
    matched_rows: int = 0
    unique_names: int = 0
    duplicate_rows: int = 0
    missing_rows: int = 0
    machines: int = 0

    @property
    def match_rate(self) -> float:
        """Share of roster names with exactly one machine, as a percentage"""
        if self.roster_rows == 0:
            return 0.0
        return (self.unique_names / self.roster_rows) * 100


@dataclass
class ImportResult:
    """Machines assembled by an import plus its discrepancy reports"""
    machines: List[Machine] = field(default_factory=list)
    duplicates: List[DiscrepancyRow] = field(default_factory=list)
    missing: List[DiscrepancyRow] = field(default_factory=list)
    missing_report: Optional[str] = None
    duplicates_report: Optional[str] = None
    stats: ImportStats = field(default_factory=ImportStats)


@dataclass
class UploadResult:
    """Outcome of delivering one payload"""
    machine_id: uuid.UUID
    filename: str
    success: bool
    message: str


@dataclass
class SendSummary:
    """Aggregated outcome of a send run"""
    total: int = 0
    sent: int = 0
    results: List[UploadResult] = field(default_factory=list)
    remaining: List[Machine] = field(default_factory=list)
    message: str = ""

    @property
    def failed(self) -> int:
        return self.total - self.sent
