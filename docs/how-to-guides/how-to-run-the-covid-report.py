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
# # How to run the COVID-19 report
#
# Here we demonstrate how to generate the COVID-19 report,
# both from Python and from the command line.
#
# Normally, the inputs are downloaded from the
# [JHU CSSE repository](https://github.com/CSSEGISandData/COVID-19).
# To keep this guide runnable offline,
# we write small JHU-like snapshots to a temporary directory
# and point the report at them instead.

# %% [markdown]
# ## Imports

# %%
import tempfile
from pathlib import Path

import seaborn as sns

from casecounts.config import WEEK_START_MONDAY, ReportConfig
from casecounts.covid import CovidReport
from casecounts.reporting import write_report
from casecounts.testing import write_jhu_like_sources

# %% [markdown]
# ## Inputs
#
# If you have local copies of the JHU files
# (for example, because the upstream repository is archived
# or because you want a reproducible snapshot),
# put them in one directory, keeping their upstream names.

# %%
source_dir = Path(tempfile.mkdtemp()) / "jhu"
source_dir.mkdir()
write_jhu_like_sources(
    source_dir,
    regions={
        "France": (None, "Reunion"),
        "Germany": (None,),
        "Denmark": (None,),
        "Sweden": (None,),
    },
    populations={
        "France": 65_273_511,
        "Germany": 83_783_942,
        "Denmark": 5_792_202,
        "Sweden": 10_099_265,
    },
    n_days=90,
)
sorted(p.name for p in source_dir.iterdir())

# %% [markdown]
# ## Configuration
#
# The defaults can be overridden when creating the configuration
# or with `CASECOUNTS_*` environment variables
# (see `ReportConfig.from_env`).
# Here we start weeks on Monday instead of Sunday
# and only consolidate two groups.

# %%
config = ReportConfig(
    output_dir=source_dir.parent / "report",
    source_dir=source_dir,
    week_start=WEEK_START_MONDAY,
    consolidation_groups=("G7", "Nordic countries"),
)
config

# %% [markdown]
# ## Running the report
#
# The report returns the tables behind it, as well as the report itself.

# %%
result = CovidReport(config=config)()

# %%
result.countries_weekly

# %% [markdown]
# Consolidated groups are calculated by summing the counts
# of the members and dividing by the total population of the members.

# %%
result.consolidated

# %%
sns.relplot(
    data=result.consolidated.reset_index(),
    x="year_week",
    y="cases_per_1000",
    hue="region",
    kind="line",
)

# %% [markdown]
# The trend fits are also available.
# A fit is `None` if there wasn't enough data to fit it.

# %%
{name: fit.summary() if fit else fit for name, fit in result.trends.items()}

# %% [markdown]
# ## Writing the report

# %%
report_path = write_report(result.report, config.output_dir)
print(report_path.read_text()[:1000])

# %% [markdown]
# ## Command line
#
# The same report can be generated from the command line with
#
# ```sh
# casecounts covid --source-dir path/to/jhu --output-dir path/to/report
# ```
#
# Leaving out `--source-dir` downloads the inputs instead.
