# =============================================================================
# processors/asset_export.py - Asset management export (ocs.csv) processor
# =============================================================================

from typing import Dict, Any

from core.base_processor import BaseTableProcessor
from core.models import AssetExportRow


class AssetExportProcessor(BaseTableProcessor[AssetExportRow]):
    """Asset export mapping computer names to serial numbers and users"""

    # Column mappings
    COMPUTERNAME_COLUMN = 'computername'
    SERIALNUMBER_COLUMN = 'serialnumber'
    USERNAME_COLUMN = 'username'

    REQUIRED_COLUMNS = (COMPUTERNAME_COLUMN, SERIALNUMBER_COLUMN, USERNAME_COLUMN)

    def create_record(self, row: Dict[str, Any]) -> AssetExportRow:
        return AssetExportRow(
            computer_name=row[self.COMPUTERNAME_COLUMN],
            serial_number=row[self.SERIALNUMBER_COLUMN],
            user_name=row[self.USERNAME_COLUMN]
        )
