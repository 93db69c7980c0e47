# =============================================================================
# core/correlator.py - Serial number correlation against the inventory
# =============================================================================

import logging
from typing import Dict, Iterable, List, Sequence, Tuple

from core.models import InventoryRow, MatchRow

SERIAL_SUFFIX_LENGTH = 6


def serial_suffix(serial_number: str, length: int = SERIAL_SUFFIX_LENGTH) -> str:
    """Trailing characters used to join serials; the whole string when shorter"""
    return serial_number[-length:] if length else ''


class SerialCorrelator:
    """Joins matched asset rows to inventory rows by trailing serial characters"""

    def __init__(self, inventory: Sequence[InventoryRow], suffix_length: int = SERIAL_SUFFIX_LENGTH):
        self.suffix_length = suffix_length
        self.logger = logging.getLogger(self.__class__.__name__)

        self._index: Dict[str, List[InventoryRow]] = {}
        for row in inventory:
            key = serial_suffix(row.serial_number, suffix_length)
            self._index.setdefault(key, []).append(row)

    def find(self, serial_number: str) -> List[InventoryRow]:
        """All inventory rows whose serial shares the trailing characters"""
        return list(self._index.get(serial_suffix(serial_number, self.suffix_length), []))

    def correlate(self, results: Iterable[MatchRow]) -> List[Tuple[MatchRow, InventoryRow]]:
        """Fan out each result row to every inventory row it correlates with"""
        pairs = []
        unmatched = 0

        for result in results:
            inventory_rows = self.find(result.serialnumber)
            if not inventory_rows:
                unmatched += 1
                self.logger.debug(f"No inventory entry for serial {result.serialnumber}")
            pairs.extend((result, inventory_row) for inventory_row in inventory_rows)

        if unmatched:
            self.logger.warning(f"{unmatched} matched computer(s) have no inventory entry")
        return pairs
