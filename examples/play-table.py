import pyarrow.csv as csv

from datawrangle.compute import col, desc, if_else, mean, min_rank, n, ntile
from datawrangle.table import Table

options = csv.ConvertOptions(strings_can_be_null=True)
surveys = Table(csv.read_csv("data/surveys.csv", convert_options=options))
species = Table(csv.read_csv("data/species.csv"))

surveys_complete = surveys.drop_na("weight", "hindfoot_length", "sex", "species_id")

# Species observed at least 50 times, with their genus.
common = (
  surveys_complete
  .count("species_id")
  .filter(col("n") >= 50)
  .left_join(species.select("species_id", "genus"), by="species_id")
  .arrange(desc("n"))
)
print(common)

# Weight relative to the other individuals of the same species.
ranked = (
  surveys_complete
  .semi_join(common, by="species_id")
  .group_by("species_id")
  .mutate(
    weight_rank=min_rank("weight", desc=True),
    quartile=ntile("weight", n=4),
    size=if_else(col("weight") > mean("weight"), "large", "small"),
  )
  .ungroup()
  .select("record_id", "species_id", "weight", "weight_rank", "quartile", "size")
  .arrange("species_id", "weight_rank")
)
print(ranked)

# Mean weight of each sex, one column for each sex.
wide = (
  surveys_complete
  .group_by("plot_id", "sex")
  .summarize(mean_weight=mean("weight"))
  .pivot_wider(names_from="sex", values_from="mean_weight")
)
print(wide)
print(wide.pivot_longer(["F", "M"], names_to="sex", values_to="mean_weight"))

print(surveys_complete.group_by("year").summarize(n=n()).head(10))
