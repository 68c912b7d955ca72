import pyarrow.csv as csv

from datawrangle.compute import (
    AggregateNode,
    FilterNode,
    PyArrowTableDataSource,
    SortNode,
    col,
    mean,
    n,
)

surveys = csv.read_csv(
    "data/surveys.csv", convert_options=csv.ConvertOptions(strings_can_be_null=True)
)

query = SortNode(
    ["avg_weight"],
    [True],
    AggregateNode(
        ["species_id"],
        {"n": n(), "avg_weight": mean("weight")},
        FilterNode(col("weight").is_valid(), PyArrowTableDataSource(surveys)),
    ),
)
print(query)
for batch in query.batches():
    print("---")
    print(batch)
