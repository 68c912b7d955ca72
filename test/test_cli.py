import pytest

from datawrangle.commands.wrangle import load_table, main, parse_columns, parse_sorting

SURVEYS = """record_id,species_id,weight
1,NL,150
2,DM,40
3,DM,
4,,12
"""


@pytest.fixture
def surveys_csv(tmp_path):
    path = tmp_path / "surveys.csv"
    path.write_text(SURVEYS)
    return str(path)


def test_parse_arguments():
    assert parse_columns("year, weight,") == ["year", "weight"]
    assert parse_sorting("-weight,year") == [("weight", "descending"), "year"]


def test_load_table_empty_fields_are_missing(surveys_csv):
    table = load_table(surveys_csv)
    assert table.pull("species_id") == ["NL", "DM", "DM", None]
    assert table.pull("weight") == [150, 40, None, 12]


def test_load_table_delimiter(tmp_path):
    path = tmp_path / "surveys.tsv"
    path.write_text("a\tb\n1\tx\n")
    assert load_table(str(path), "\t").to_pylist() == [{"a": 1, "b": "x"}]


def test_count_and_arrange(surveys_csv, capsys):
    assert main([surveys_csv, "--count=species_id", "--arrange=-n"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "Table: 3 rows x 2 columns"
    assert "DM" in lines[3]


def test_drop_na_select_head(surveys_csv, capsys):
    assert main([surveys_csv, "--drop-na", "-s", "record_id,weight", "-n", "1"]) == 0
    out = capsys.readouterr().out
    assert out.splitlines()[0] == "Table: 1 rows x 2 columns"
    assert "species_id" not in out


def test_invalid_request(surveys_csv, capsys):
    assert main([surveys_csv, "--select=sex"]) == 1
    assert capsys.readouterr().out.startswith("Invalid request, Unknown column 'sex'")


def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "missing.csv")]) == 1
    assert capsys.readouterr().out.startswith("Unable to read")
