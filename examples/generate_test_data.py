import os
import csv
import random

if not os.path.exists("data"):
    os.mkdir("data")

if not os.path.exists("data/species.csv"):
  # Genera species.csv
  species = [
    ["DM", "Dipodomys", "merriami", "Rodent"],
    ["DO", "Dipodomys", "ordii", "Rodent"],
    ["NL", "Neotoma", "albigula", "Rodent"],
    ["OL", "Onychomys", "leucogaster", "Rodent"],
    ["PE", "Peromyscus", "eremicus", "Rodent"],
    ["AB", "Amphispiza", "bilineata", "Bird"],
  ]
  with open("data/species.csv", "w", newline="") as f:
    writer = csv.writer(f)
    writer.writerow(["species_id", "genus", "species", "taxa"])
    writer.writerows(species)

if not os.path.exists("data/surveys.csv"):
  # Genera surveys.csv
  species_ids = ["DM", "DO", "NL", "OL", "PE", "AB", ""]
  surveys = []
  for record_id in range(1, 1001):
    species_id = random.choice(species_ids)
    sex = random.choice(["M", "F", ""])
    hindfoot_length = random.randint(10, 60) if random.random() > 0.1 else ""
    weight = random.randint(5, 280) if random.random() > 0.1 else ""
    surveys.append([
      record_id,
      random.randint(1, 12),
      random.randint(1977, 2002),
      random.randint(1, 24),
      species_id,
      sex,
      hindfoot_length,
      weight,
    ])

  with open("data/surveys.csv", "w", newline="") as f:
    writer = csv.writer(f)
    writer.writerow(["record_id", "month", "year", "plot_id", "species_id", "sex", "hindfoot_length", "weight"])
    writer.writerows(surveys)
