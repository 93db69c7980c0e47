# =============================================================================
# processors/roster.py - Roster (name.csv) processor
# =============================================================================

from typing import Dict, Any

from core.base_processor import BaseTableProcessor
from core.models import RosterEntry


class RosterProcessor(BaseTableProcessor[RosterEntry]):
    """Roster file listing the names to look for"""

    # Column mappings
    NAME_COLUMN = 'name'

    REQUIRED_COLUMNS = (NAME_COLUMN,)

    def create_record(self, row: Dict[str, Any]) -> RosterEntry:
        return RosterEntry(name=row[self.NAME_COLUMN])
