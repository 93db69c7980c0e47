# =============================================================================
# core/reconciler.py - Import workflow: match, classify, correlate, assemble
# =============================================================================

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from core.assembler import assemble_machines
from core.correlator import SerialCorrelator
from core.matcher import NameMatcher, detect_discrepancies, unique_names
from core.models import (
    AssetExportRow, DiscrepancyRow, EnrollmentSettings, ImportResult, InventoryRow, RosterEntry
)
from processors.asset_export import AssetExportProcessor
from processors.inventory import InventoryProcessor
from processors.roster import RosterProcessor
from utils.csv_utils import CSVHandler, ExportError, ParseError

PathLike = Union[str, Path]

MISSING_REPORT = "missing.csv"
DUPLICATES_REPORT = "doublons.csv"


class EnrollmentReconciler:
    """Turns the roster, asset export and inventory into enrollment records"""

    def __init__(self, settings: EnrollmentSettings):
        self.settings = settings
        self.matcher = NameMatcher()
        self.logger = logging.getLogger(self.__class__.__name__)

    def process_files(self, name_csv: PathLike, ocs_csv: PathLike, inventory_csv: PathLike,
                      missing_csv: Optional[PathLike] = None,
                      doublons_csv: Optional[PathLike] = None) -> ImportResult:
        """Main import workflow; a parse failure aborts the whole import"""
        self.logger.info(f"Starting {self.__class__.__name__} import workflow")

        roster_processor = RosterProcessor()
        asset_processor = AssetExportProcessor()
        inventory_processor = InventoryProcessor()

        try:
            roster = roster_processor.load(name_csv)
            assets = asset_processor.load(ocs_csv)
            inventory = inventory_processor.load(inventory_csv)
        except ParseError as e:
            self.logger.error(f"Import failed: {e}")
            raise

        result = self.reconcile(roster, assets, inventory)
        result.stats.dropped_rows = (
            roster_processor.dropped_rows + asset_processor.dropped_rows
            + inventory_processor.dropped_rows
        )

        if missing_csv:
            result.missing_report = self.write_report(result.missing, missing_csv)
        if doublons_csv:
            result.duplicates_report = self.write_report(result.duplicates, doublons_csv)

        self.log_statistics(result)
        return result

    def reconcile(self, roster: Sequence[RosterEntry], assets: Sequence[AssetExportRow],
                  inventory: Sequence[InventoryRow]) -> ImportResult:
        """Pure reconciliation of already loaded tables"""
        outcome = self.matcher.match(assets, roster)
        duplicates, missing = detect_discrepancies(outcome.buckets, roster)

        # Only names with a single computer go on to correlation
        unique = set(unique_names(outcome.buckets))
        unique_results = [row for row in outcome.results if row.name in unique]

        pairs = SerialCorrelator(inventory).correlate(unique_results)
        machines = assemble_machines(pairs, self.settings)

        result = ImportResult(machines=machines, duplicates=duplicates, missing=missing)
        stats = result.stats
        stats.roster_rows = len(roster)
        stats.asset_rows = len(assets)
        stats.inventory_rows = len(inventory)
        stats.matched_rows = len(outcome.results)
        stats.unique_names = len(unique)
        stats.duplicate_rows = len(duplicates)
        stats.missing_rows = len(missing)
        stats.machines = len(machines)
        return result

    def write_report(self, rows: List[DiscrepancyRow], output_path: PathLike) -> Optional[str]:
        """Write a discrepancy report when there is something to report.

        Export failures are logged and the report path comes back as None.
        """
        if not rows:
            return None

        try:
            CSVHandler.write_csv([row.as_dict() for row in rows], output_path)
        except ExportError as e:
            self.logger.error(f"Error exporting {output_path}: {e}")
            return None
        return str(output_path)

    def log_statistics(self, result: ImportResult) -> None:
        """Log import statistics"""
        stats = result.stats
        self.logger.info(
            f"Read {stats.roster_rows} names, {stats.asset_rows} computers, "
            f"{stats.inventory_rows} inventory rows ({stats.dropped_rows} dropped)"
        )
        self.logger.info(
            f"Matches: {stats.matched_rows}, duplicates: {stats.duplicate_rows}, "
            f"missing: {stats.missing_rows}"
        )
        self.logger.info(
            f"Machines assembled: {stats.machines} "
            f"(match rate {stats.match_rate:.1f}%)"
        )
