# ---
# jupyter:
#   jupytext:
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
#       jupytext_version: 1.16.6
#   kernelspec:
#     display_name: Python 3 (ipykernel)
#     language: python
#     name: python3
# ---

# %% [markdown]
# # How to run the NYPD shooting incidents report
#
# Here we demonstrate how to generate the NYPD shooting incidents report.
# As in the COVID guide, we use a synthetic extract
# so that this runs without network access.
# To use the real data, simply leave out the incidents
# (they are then downloaded from NYC Open Data).

# %% [markdown]
# ## Imports

# %%
import seaborn as sns

from casecounts.cleaning import NYPD_CLEANING_RULES, clean
from casecounts.config import ReportConfig
from casecounts.nypd import NYPDShootingReport
from casecounts.testing import get_nypd_like_input

# %% [markdown]
# ## Starting point
#
# The raw data has one row per incident.
# It is loaded with the categorical columns as strings,
# so that tokens like "1020" aren't turned into numbers.

# %%
incidents = get_nypd_like_input(n_incidents=2000, start="2018-01-01")
incidents.head()

# %% [markdown]
# ## Cleaning
#
# Cleaning only applies fixed lookups.
# Known miscoded age groups are remapped
# and tokens meaning 'unknown' become missing.
# Anything else is left alone (and flagged when the report runs).

# %%
NYPD_CLEANING_RULES.remap["PERP_AGE_GROUP"]

# %%
clean(incidents, NYPD_CLEANING_RULES)["PERP_AGE_GROUP"].value_counts(dropna=False)

# %% [markdown]
# ## Running the report

# %%
result = NYPDShootingReport(config=ReportConfig(), render_figures=False)(incidents)

# %%
result.unrecognised_values

# %% [markdown]
# ### Incidents per 1000 people
#
# Rates use a fixed population per borough.

# %%
result.quarterly

# %%
sns.relplot(
    data=result.quarterly.reset_index(),
    x="quarter",
    y="incidents_per_1000",
    hue="borough",
    kind="line",
)

# %% [markdown]
# ### Cohorts
#
# Perpetrator and victim cohorts are compared side by side.
# Cohorts which were only observed on one side are missing (`<NA>`)
# on the other side, they are not zero.

# %%
result.cohorts

# %%
result.murder_share

# %% [markdown]
# ### Trends

# %%
print(result.trends["citywide"].summary("quarter", "incidents per 1000"))

# %%
result.trends["by_borough"].params

# %% [markdown]
# ## Command line
#
# ```sh
# casecounts nypd --output-dir path/to/report
# ```
