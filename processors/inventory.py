# =============================================================================
# processors/inventory.py - Inventory export (inventory.csv) processor
# =============================================================================

from typing import Dict, Any

from core.base_processor import BaseTableProcessor
from core.models import InventoryRow


class InventoryProcessor(BaseTableProcessor[InventoryRow]):
    """Inventory export mapping serial numbers to asset numbers"""

    # Column mappings
    SERIALNUMBER_COLUMN = 'serialnumber'
    INVENTORYNUMBER_COLUMN = 'inventorynumber'

    REQUIRED_COLUMNS = (SERIALNUMBER_COLUMN, INVENTORYNUMBER_COLUMN)

    def create_record(self, row: Dict[str, Any]) -> InventoryRow:
        """Keep every other column untouched in extra"""
        extra = {
            key: value for key, value in row.items()
            if key not in self.REQUIRED_COLUMNS
        }
        return InventoryRow(
            serial_number=row[self.SERIALNUMBER_COLUMN],
            inventory_number=row[self.INVENTORYNUMBER_COLUMN],
            extra=extra
        )
