# =============================================================================
# core/matcher.py - Roster name to computer name matching
# =============================================================================

import logging
import re
from typing import Dict, Iterable, List, Pattern, Sequence, Tuple

from core.models import (
    AssetExportRow, DiscrepancyKind, DiscrepancyRow, MatchOutcome, MatchRow, RosterEntry
)


def build_name_pattern(name: str) -> Pattern[str]:
    """Pattern requiring every character of name, in order, anywhere in the haystack"""
    pattern = '.*'.join(re.escape(char) for char in name)
    return re.compile(pattern, re.IGNORECASE | re.DOTALL)


def name_matches(name: str, computer_name: str) -> bool:
    """True when name is an ordered, case-insensitive subsequence of computer_name"""
    if not name:
        return False
    return build_name_pattern(name).search(computer_name) is not None


class NameMatcher:
    """Matches roster names against asset export computer names"""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def match(self, assets: Iterable[AssetExportRow],
              roster: Sequence[RosterEntry]) -> MatchOutcome:
        """Return the name -> computer names buckets and the flat result rows"""
        outcome = MatchOutcome()
        # An empty pattern matches every computer; empty names are left unmatched
        # and come out of detect_discrepancies as missing
        patterns = [
            (entry.name, build_name_pattern(entry.name)) for entry in roster if entry.name
        ]

        for asset in assets:
            for name, pattern in patterns:
                if not pattern.search(asset.computer_name):
                    continue

                outcome.buckets.setdefault(name, []).append(asset.computer_name)
                outcome.results.append(MatchRow(
                    name=name,
                    computername=asset.computer_name,
                    username=asset.user_name,
                    serialnumber=asset.serial_number
                ))

        self.logger.info(
            f"Matched {len(outcome.results)} computer(s) for {len(outcome.buckets)} name(s)"
        )
        return outcome


def detect_discrepancies(buckets: Dict[str, List[str]],
                         roster: Iterable[RosterEntry]) -> Tuple[List[DiscrepancyRow], List[DiscrepancyRow]]:
    """Split matcher buckets into duplicate and missing report rows.

    A name lands in the missing set once per empty bucket and once per
    roster occurrence absent from the buckets; the two sources are not
    de-duplicated against each other.
    """
    duplicates: List[DiscrepancyRow] = []
    missing: List[DiscrepancyRow] = []

    for name, computer_names in buckets.items():
        if len(computer_names) > 1:
            for computer_name in computer_names:
                duplicates.append(DiscrepancyRow(
                    kind=DiscrepancyKind.DUPLICATE, name=name, computername=computer_name
                ))
        if not computer_names:
            missing.append(DiscrepancyRow(kind=DiscrepancyKind.MISSING, name=name))

    for entry in roster:
        if entry.name not in buckets:
            missing.append(DiscrepancyRow(kind=DiscrepancyKind.MISSING, name=entry.name))

    return duplicates, missing


def unique_names(buckets: Dict[str, List[str]]) -> List[str]:
    """Names matched by exactly one computer"""
    return [name for name, computer_names in buckets.items() if len(computer_names) == 1]
