# =============================================================================
# core/base_processor.py - Abstract table processor
# =============================================================================

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Dict, Any, Generic, Optional, Tuple, TypeVar, Union
import logging

from utils.csv_utils import CSVHandler, normalize_keys

RecordT = TypeVar('RecordT')


class BaseTableProcessor(ABC, Generic[RecordT]):
    """Abstract base class turning one CSV export into typed records"""

    # Normalized column names a row must carry to become a record
    REQUIRED_COLUMNS: Tuple[str, ...] = ()

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.dropped_rows = 0

    @abstractmethod
    def create_record(self, row: Dict[str, Any]) -> RecordT:
        """Create a typed record from a normalized CSV row"""
        pass

    def should_skip_row(self, row: Dict[str, Any]) -> bool:
        """Skip rows missing any required column"""
        return any(column not in row for column in self.REQUIRED_COLUMNS)

    def load(self, file_path: Union[str, Path]) -> List[RecordT]:
        """Read a CSV file and convert its rows to records"""
        csv_data = CSVHandler.read_csv(file_path)
        records = self.process_rows(csv_data)
        self.logger.info(f"Loaded {len(records)} records from {file_path}")
        return records

    def process_rows(self, csv_data: List[Dict[str, Any]]) -> List[RecordT]:
        """Normalize keys and build records, dropping rows that fail validation"""
        records = []
        self.dropped_rows = 0

        for raw_row in csv_data:
            row = normalize_keys(raw_row)
            if self.should_skip_row(row):
                self.dropped_rows += 1
                continue
            records.append(self.create_record(row))

        if self.dropped_rows:
            self.logger.warning(
                f"Dropped {self.dropped_rows} row(s) missing one of {list(self.REQUIRED_COLUMNS)}"
            )
        return records

    def describe(self) -> Optional[str]:
        """Human readable list of the required columns"""
        if not self.REQUIRED_COLUMNS:
            return None
        return ', '.join(self.REQUIRED_COLUMNS)
