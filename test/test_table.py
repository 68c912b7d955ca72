import pyarrow as pa
import pytest

from datawrangle import GroupedTable, Table, bind_cols, bind_rows
from datawrangle.compute import (
    DuplicateColumn,
    IncompatibleBind,
    MaxAggregation,
    RowCountMismatch,
    SumAggregation,
    TypeMismatch,
    UnknownColumn,
    col,
    dense_rank,
    lag,
    lead,
    desc,
    mean,
    min_rank,
    n,
    row_number,
    starts_with,
)


@pytest.fixture
def surveys():
    return Table(
        {
            "record_id": [1, 2, 3, 4, 5, 6],
            "plot_id": [2, 3, 2, 7, 3, 2],
            "species_id": ["NL", "DM", "DM", "DM", None, "NL"],
            "sex": ["M", "F", "F", "M", "F", None],
            "weight": [150, 40, 35, None, 12, 140],
        }
    )


@pytest.fixture
def species():
    return Table(
        {
            "species_id": ["DM", "NL", "PE"],
            "genus": ["Dipodomys", "Neotoma", "Peromyscus"],
        }
    )


def test_select_is_lossy(surveys):
    selected = surveys.select("record_id", "weight")
    assert selected.column_names == ["record_id", "weight"]
    assert "species_id" not in selected.column_names
    with pytest.raises(UnknownColumn):
        selected.select(*surveys.column_names)


def test_select_does_not_change_original(surveys):
    surveys.select("weight")
    assert surveys.num_columns == 5


def test_select_with_selectors(surveys):
    assert surveys.select(~starts_with("s")).column_names == [
        "record_id",
        "plot_id",
        "weight",
    ]


def test_filter_is_idempotent(surveys):
    predicate = col("weight") > 30
    once = surveys.filter(predicate)
    assert once.pull("record_id") == [1, 2, 3, 6]
    assert once.filter(predicate) == once


def test_filter_multiple_predicates(surveys):
    result = surveys.filter(col("weight") > 30, col("sex") == "F")
    assert result.pull("record_id") == [2, 3]


def test_filter_without_predicates(surveys):
    assert surveys.filter() == surveys


def test_arrange_is_stable(surveys):
    result = surveys.arrange("plot_id")
    assert result.pull("record_id") == [1, 3, 6, 2, 5, 4]


def test_arrange_descending_missing_last(surveys):
    result = surveys.arrange(desc("weight"))
    assert result.pull("weight") == [150, 140, 40, 35, 12, None]


def test_arrange_multiple_keys(surveys):
    result = surveys.arrange("species_id", desc("weight"))
    assert result.pull("record_id") == [2, 3, 4, 1, 6, 5]


def test_mutate_sees_previous_columns():
    table = Table({"x": [1, 2]})
    result = table.mutate(y=col("x") * 2, z=col("y") + 1)
    assert result.to_pylist() == [{"x": 1, "y": 2, "z": 3}, {"x": 2, "y": 4, "z": 5}]


def test_mutate_with_non_identifier_names():
    result = Table({"x": [1, 2]}).mutate({"x squared": col("x") * col("x")})
    assert result.column_names == ["x", "x squared"]
    assert result.pull("x squared") == [1, 4]


def test_mutate_ranking():
    result = Table({"x": [3, 4, 1, 3, 1]}).mutate(
        min_rank=min_rank("x"), dense_rank=dense_rank("x")
    )
    assert result.pull("min_rank") == [3, 5, 1, 3, 1]
    assert result.pull("dense_rank") == [2, 3, 1, 2, 1]


def test_mutate_type_mismatch(surveys):
    with pytest.raises(TypeMismatch):
        surveys.mutate(bad=col("species_id") + 1)


def test_transmute(surveys):
    result = surveys.transmute(kg=col("weight") / 1000)
    assert result.column_names == ["kg"]
    assert result.pull("kg")[:2] == [0.15, 0.04]


def test_rename(surveys):
    result = surveys.rename(species="species_id", mass="weight")
    assert result.column_names == ["record_id", "plot_id", "species", "sex", "mass"]


def test_group_by_summarize():
    table = Table({"g": [1, 1, 2], "x": [3, 4, 1]})
    result = table.group_by("g").summarize(n=n())
    assert isinstance(result, Table)
    assert result.to_pylist() == [{"g": 1, "n": 2}, {"g": 2, "n": 1}]


def test_grouped_summarize_missing_keys_last(surveys):
    result = surveys.group_by("species_id").summarize(
        n=n(), heaviest=MaxAggregation("weight", skip_missing=True)
    )
    assert result.to_pylist() == [
        {"species_id": "DM", "n": 3, "heaviest": 40},
        {"species_id": "NL", "n": 2, "heaviest": 150},
        {"species_id": None, "n": 1, "heaviest": 12},
    ]


def test_summarize_without_groups(surveys):
    result = surveys.summarise(total=SumAggregation("weight", skip_missing=True))
    assert result.to_pylist() == [{"total": 377}]


def test_grouped_mutate_within_groups(surveys):
    grouped = surveys.group_by("plot_id").mutate(
        nth=row_number(), diff=col("weight") - mean("weight")
    )
    assert isinstance(grouped, GroupedTable)
    assert grouped.pull("nth") == [1, 1, 2, 1, 2, 3]
    assert grouped.pull("diff") == [
        pytest.approx(41.67, abs=0.01),
        14.0,
        pytest.approx(-73.33, abs=0.01),
        None,
        -14.0,
        pytest.approx(31.67, abs=0.01),
    ]


def test_grouped_lag_and_lead_shift_within_groups():
    table = Table({"g": ["a", "b", "a", "b"], "x": [1, 2, 3, 4]})
    result = table.group_by("g").mutate(prev=lag("x"), next=lead("x"))
    assert result.pull("prev") == [None, None, 1, 2]
    assert result.pull("next") == [3, 4, None, None]


def test_summarize_over_coarser_keys_matches_count(surveys):
    by_plot_and_sex = surveys.group_by("plot_id", "sex").summarize(n=n())
    by_plot = by_plot_and_sex.group_by("plot_id").summarize(n=SumAggregation("n"))
    assert by_plot == surveys.count("plot_id")


def test_grouped_transmute_keeps_keys(surveys):
    result = surveys.group_by("plot_id").transmute(nth=row_number())
    assert result.column_names == ["plot_id", "nth"]


def test_grouped_filter(surveys):
    result = surveys.group_by("plot_id").filter(col("weight") == MaxAggregation("weight"))
    assert result.pull("record_id") == [1, 2]


def test_grouped_select_keeps_keys(surveys):
    result = surveys.group_by("plot_id").select("weight")
    assert result.column_names == ["plot_id", "weight"]


def test_group_keys(surveys):
    grouped = surveys.group_by("plot_id")
    assert grouped.n_groups == 3
    assert grouped.group_keys().pull("plot_id") == [2, 3, 7]
    assert grouped.ungroup() == surveys


def test_group_by_errors(surveys):
    with pytest.raises(UnknownColumn):
        surveys.group_by("site")
    with pytest.raises(ValueError):
        surveys.group_by()


def test_count(surveys):
    assert surveys.count("sex").to_pylist() == [
        {"sex": "F", "n": 3},
        {"sex": "M", "n": 2},
        {"sex": None, "n": 1},
    ]
    assert surveys.count().to_pylist() == [{"n": 6}]


def test_count_sorted():
    table = Table({"species": ["NL", "DM", "NL", "NL", "DM", "AB"]})
    result = table.count("species", sort=True, name="total")
    assert result.to_pylist() == [
        {"species": "NL", "total": 3},
        {"species": "DM", "total": 2},
        {"species": "AB", "total": 1},
    ]


def test_grouped_count_and_tally(surveys):
    grouped = surveys.group_by("plot_id")
    assert grouped.tally().pull("n") == [3, 2, 1]
    result = grouped.count("sex")
    assert result.column_names == ["plot_id", "sex", "n"]
    assert result.num_rows == 5


def test_distinct(surveys):
    assert surveys.distinct("plot_id").pull("plot_id") == [2, 3, 7]
    assert Table({"a": [1, 1, None, None]}).distinct().pull("a") == [1, None]


def test_drop_na(surveys):
    assert surveys.drop_na().pull("record_id") == [1, 2, 3]
    assert surveys.drop_na("weight").pull("record_id") == [1, 2, 3, 5, 6]


def test_head_and_slice(surveys):
    assert surveys.head(2).pull("record_id") == [1, 2]
    assert surveys.head().num_rows == 5
    assert surveys.slice(4).pull("record_id") == [5, 6]
    assert surveys.slice(2, 2).pull("record_id") == [3, 4]
    assert surveys.slice(10).num_rows == 0


def test_pipe(surveys):
    def heavy(table, threshold):
        return table.filter(col("weight") > threshold)

    assert surveys.pipe(heavy, 100).pull("record_id") == [1, 6]


def test_inner_join_keys_exist_on_both_sides(surveys, species):
    result = surveys.inner_join(species, by="species_id")
    assert result.column_names == [
        "record_id",
        "plot_id",
        "species_id",
        "sex",
        "weight",
        "genus",
    ]
    keys = set(result.pull("species_id"))
    assert keys <= set(surveys.pull("species_id")) & set(species.pull("species_id"))
    assert result.pull("record_id") == [1, 2, 3, 4, 6]


def test_left_join_keeps_all_rows(surveys, species):
    result = surveys.left_join(species)
    assert result.num_rows >= surveys.num_rows
    assert result.pull("genus") == [
        "Neotoma",
        "Dipodomys",
        "Dipodomys",
        "Dipodomys",
        None,
        "Neotoma",
    ]


def test_anti_join_keys_never_in_right(surveys, species):
    result = species.anti_join(surveys, by="species_id")
    assert result.pull("species_id") == ["PE"]
    assert not set(result.pull("species_id")) & set(surveys.pull("species_id"))


def test_semi_join(surveys, species):
    result = species.semi_join(surveys)
    assert result.to_pydict() == {
        "species_id": ["DM", "NL"],
        "genus": ["Dipodomys", "Neotoma"],
    }


def test_full_join(surveys, species):
    result = surveys.full_join(species, by="species_id")
    assert result.num_rows == 7
    assert result.to_pylist()[-1] == {
        "record_id": None,
        "plot_id": None,
        "species_id": "PE",
        "sex": None,
        "weight": None,
        "genus": "Peromyscus",
    }


def test_right_join_different_key_names(species):
    counts = Table({"code": ["PE", "XX"], "n": [4, 1]})
    result = species.right_join(counts, by=[("species_id", "code")])
    assert result.to_pylist() == [
        {"species_id": "PE", "genus": "Peromyscus", "n": 4},
        {"species_id": "XX", "genus": None, "n": 1},
    ]


def test_join_suffixes():
    left = Table({"id": [1, 2], "value": ["a", "b"]})
    right = Table({"id": [2, 1], "value": ["B", "A"]})
    result = left.inner_join(right, by="id", suffixes=("_x", "_y"))
    assert result.to_pylist() == [
        {"id": 1, "value_x": "a", "value_y": "A"},
        {"id": 2, "value_x": "b", "value_y": "B"},
    ]


def test_join_without_common_columns():
    with pytest.raises(ValueError):
        Table({"a": [1]}).inner_join(Table({"b": [1]}))


def test_bind_rows():
    result = bind_rows({"a": ["x"], "b": [2]}, {"a": ["y"]})
    assert result.to_pylist() == [{"a": "x", "b": 2}, {"a": "y", "b": None}]


def test_bind_rows_method_with_id():
    first = Table({"a": [1, 2]})
    result = first.bind_rows(Table({"a": [3]}), id="batch")
    assert result.to_pydict() == {"batch": [0, 0, 1], "a": [1, 2, 3]}


def test_bind_rows_incompatible():
    with pytest.raises(IncompatibleBind):
        bind_rows({"price": [1]}, {"price": ["cheap"]})


def test_bind_cols():
    result = Table({"a": [1, 2]}).bind_cols(Table({"b": ["x", "y"]}))
    assert result.column_names == ["a", "b"]
    with pytest.raises(RowCountMismatch):
        bind_cols({"a": [1, 2]}, {"b": [1]})
    with pytest.raises(ValueError):
        bind_cols()


def test_pivot_round_trip():
    wide = Table({"plot_id": [1, 2, 3], "DM": [40, 12, 30], "NL": [35, 20, 8]})
    long = wide.pivot_longer(["DM", "NL"], "species", "weight")
    assert long.num_rows == 6
    assert long.pivot_wider("species", "weight") == wide


def test_pivot_longer_single_column():
    wide = Table({"plot_id": [1, 2], "DM": [40, 12]})
    assert wide.pivot_longer("DM").column_names == ["plot_id", "name", "value"]


def test_from_pylist():
    table = Table.from_pylist([{"a": 1, "b": "x"}, {"b": "y", "c": True}])
    assert table.column_names == ["a", "b", "c"]
    assert table.to_pydict() == {"a": [1, None], "b": ["x", "y"], "c": [None, True]}


@pytest.mark.parametrize(
    "data",
    [
        pa.table({"a": [1, 2]}),
        pa.record_batch({"a": [1, 2]}),
        {"a": [1, 2]},
    ],
)
def test_constructor_inputs(data):
    table = Table(data)
    assert table == Table(table)
    assert table.to_pydict() == {"a": [1, 2]}
    assert len(table) == 2


def test_constructor_errors():
    with pytest.raises(ValueError):
        Table([1, 2, 3])
    with pytest.raises(RowCountMismatch):
        Table({"a": [1], "b": [1, 2]})
    with pytest.raises(TypeMismatch):
        Table({"a": [1, "x"]})
    with pytest.raises(DuplicateColumn):
        Table(pa.table([pa.array([1]), pa.array([2])], names=["a", "a"]))


def test_empty_table():
    table = Table(pa.table({"a": pa.array([], type=pa.int64())}))
    assert table.num_rows == 0
    assert table.filter(col("a") > 1).num_rows == 0
    assert table.summarize(n=n()).to_pylist() == [{"n": 0}]


def test_tables_are_not_hashable(surveys):
    with pytest.raises(TypeError):
        hash(surveys)


def test_repr(surveys):
    assert repr(surveys).splitlines()[0] == "Table: 6 rows x 5 columns"
    grouped = repr(surveys.group_by("plot_id")).splitlines()[0]
    assert grouped == "GroupedTable: 6 rows x 5 columns, groups: plot_id [3]"


def test_pull_unknown_column(surveys):
    with pytest.raises(UnknownColumn) as excinfo:
        surveys.pull("mass")
    assert "weight" in str(excinfo.value)
