from core.matcher import NameMatcher, detect_discrepancies, name_matches, unique_names
from core.models import AssetExportRow, DiscrepancyKind, RosterEntry


def make_asset(computer_name: str, serial: str = "SN000001", user: str = "user") -> AssetExportRow:
    return AssetExportRow(computer_name=computer_name, serial_number=serial, user_name=user)


def test_name_matches_ordered_subsequence():
    assert name_matches("jdoe", "PC-JDOE-01")
    assert name_matches("jdoe", "j-x-d-o-e")
    assert not name_matches("jdoe", "eodj")


def test_name_matches_escapes_regex_characters():
    assert name_matches("a.b", "a--.--b")
    assert not name_matches("a.b", "axb")


def test_empty_name_never_matches():
    assert not name_matches("", "anything")


def test_match_builds_buckets_and_results():
    assets = [make_asset("PC-JDOE-01", "ABC123456", "John Doe"), make_asset("PC-OTHER")]
    roster = [RosterEntry("jdoe")]

    outcome = NameMatcher().match(assets, roster)

    assert outcome.buckets == {"jdoe": ["PC-JDOE-01"]}
    assert len(outcome.results) == 1
    result = outcome.results[0]
    assert result.computername == "PC-JDOE-01"
    assert result.serialnumber == "ABC123456"
    assert result.username == "John Doe"


def test_match_skips_empty_roster_names():
    outcome = NameMatcher().match([make_asset("PC-1")], [RosterEntry("")])

    assert outcome.buckets == {}
    assert outcome.results == []

    duplicates, missing = detect_discrepancies(outcome.buckets, [RosterEntry("")])
    assert duplicates == []
    assert [row.name for row in missing] == [""]


def test_duplicates_produce_one_row_per_computer():
    assets = [make_asset("doe-laptop"), make_asset("doe-desktop")]
    roster = [RosterEntry("doe")]

    outcome = NameMatcher().match(assets, roster)
    duplicates, missing = detect_discrepancies(outcome.buckets, roster)

    assert [(row.name, row.computername) for row in duplicates] == [
        ("doe", "doe-laptop"),
        ("doe", "doe-desktop"),
    ]
    assert all(row.kind is DiscrepancyKind.DUPLICATE for row in duplicates)
    assert duplicates[0].as_dict() == {"computername": "doe-laptop", "name": "doe"}
    assert missing == []
    assert unique_names(outcome.buckets) == []


def test_unmatched_names_are_missing():
    roster = [RosterEntry("jdoe"), RosterEntry("asmith")]
    outcome = NameMatcher().match([make_asset("PC-JDOE")], roster)

    duplicates, missing = detect_discrepancies(outcome.buckets, roster)

    assert duplicates == []
    assert [row.name for row in missing] == ["asmith"]
    assert missing[0].as_dict() == {"name": "asmith"}


def test_empty_bucket_and_absent_name_are_both_reported():
    roster = [RosterEntry("ghost")]

    _, missing = detect_discrepancies({"ghost": []}, roster)
    assert [row.name for row in missing] == ["ghost"]

    _, missing = detect_discrepancies({"ghost": []}, [RosterEntry("ghost"), RosterEntry("nobody")])
    assert [row.name for row in missing] == ["ghost", "nobody"]


def test_repeated_roster_name_missing_once_per_occurrence():
    roster = [RosterEntry("nobody"), RosterEntry("nobody")]

    _, missing = detect_discrepancies({}, roster)

    assert [row.name for row in missing] == ["nobody", "nobody"]
