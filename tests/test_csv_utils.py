import pytest

from utils.csv_utils import BOM, CSVHandler, ExportError, ParseError, normalize_keys


def test_parse_csv_trims_headers_and_values():
    rows = CSVHandler.parse_csv(" name , age \n jdoe , 42 \n")

    assert rows == [{"name": "jdoe", "age": "42"}]


def test_parse_csv_skips_rows_with_wrong_field_count():
    content = "a,b,c\n1,2,3\n1,2\n4,5,6,7\n7,8,9"

    rows = CSVHandler.parse_csv(content)

    assert rows == [
        {"a": "1", "b": "2", "c": "3"},
        {"a": "7", "b": "8", "c": "9"},
    ]


def test_parse_csv_ignores_blank_lines_and_empty_documents():
    assert CSVHandler.parse_csv("") == []
    assert CSVHandler.parse_csv("\n\n") == []
    assert CSVHandler.parse_csv("name\n\njdoe\n\n") == [{"name": "jdoe"}]


def test_parse_csv_header_only_gives_no_rows():
    assert CSVHandler.parse_csv("name,computername") == []


def test_normalize_keys_strips_bom_whitespace_and_case():
    row = {f"{BOM}Name ": "x", " SerialNumber": "y"}

    normalized = normalize_keys(row)

    assert normalized == {"name": "x", "serialnumber": "y"}
    assert normalize_keys(normalized) == normalized


def test_read_csv_keeps_bom_for_normalizer(write_file):
    path = write_file("name.csv", f"{BOM}name\njdoe\n")

    rows = CSVHandler.read_csv(path)

    assert [normalize_keys(row) for row in rows] == [{"name": "jdoe"}]


def test_read_csv_missing_file_raises_parse_error(tmp_path):
    with pytest.raises(ParseError):
        CSVHandler.read_csv(tmp_path / "absent.csv")


def test_read_csv_undecodable_file_raises_parse_error(tmp_path):
    path = tmp_path / "broken.csv"
    path.write_bytes(b"name\n\xff\xfe\xfa\n")

    with pytest.raises(ParseError):
        CSVHandler.read_csv(path)


def test_render_csv_orders_columns_by_first_row():
    rows = [
        {"computername": "PC-1", "name": "doe"},
        {"name": "doe", "computername": "PC-2"},
        {"name": "smith"},
    ]

    assert CSVHandler.render_csv(rows) == "computername,name\nPC-1,doe\nPC-2,doe\n,smith"


def test_render_csv_rejects_empty_data():
    with pytest.raises(ExportError):
        CSVHandler.render_csv([])


def test_write_csv_writes_utf8(tmp_path):
    path = tmp_path / "missing.csv"

    CSVHandler.write_csv([{"name": "Hélène"}], path)

    assert path.read_text(encoding="utf-8") == "name\nHélène"


def test_write_csv_unwritable_path_raises_export_error(tmp_path):
    with pytest.raises(ExportError):
        CSVHandler.write_csv([{"name": "x"}], tmp_path / "no-such-dir" / "out.csv")


def test_read_then_write_keeps_values(write_file, tmp_path):
    source = write_file("ocs.csv", "computername,serialnumber\nPC-1,SN1\nPC-2,SN2\n")
    target = tmp_path / "copy.csv"

    CSVHandler.write_csv(CSVHandler.read_csv(source), target)

    assert CSVHandler.read_csv(target) == CSVHandler.read_csv(source)
