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
# # Understanding the weekly aggregation
#
# The COVID data is published as cumulative counts per day.
# Here we go through how these become weekly counts per 1000 people,
# one step at a time.

# %% [markdown]
# ## Imports

# %%
import pandas as pd

from casecounts.aggregation import (
    add_daily_differences,
    aggregate_weekly,
    collapse_sub_regions,
    consolidate,
    drop_leading_zero_cases,
)
from casecounts.rates import add_per_1000_rates

# %% [markdown]
# ## Starting point
#
# A long table of cumulative counts.
# Country "A" is reported for two provinces.
# Note the correction on 2020-03-06 (the cumulative count goes down).

# %%
dates = pd.date_range("2020-03-01", periods=8, freq="D")
long = pd.DataFrame(
    {
        "sub_region": ["north"] * 8 + ["south"] * 8 + [None] * 8,
        "region": ["A"] * 16 + ["B"] * 8,
        "date": list(dates) * 3,
        "cases": [0, 0, 1, 3, 6, 5, 9, 12]
        + [0, 0, 0, 2, 2, 4, 4, 8]
        + [0, 1, 1, 1, 2, 3, 5, 8],
        "deaths": [0] * 8 + [0] * 8 + [0, 0, 0, 0, 0, 1, 1, 1],
    }
)
long

# %% [markdown]
# ## Collapse provinces
#
# Provinces are summed to give one series per country.

# %%
daily = collapse_sub_regions(long)
daily

# %% [markdown]
# ## Drop days before the first case

# %%
daily = drop_leading_zero_cases(daily)
daily

# %% [markdown]
# ## Daily differences
#
# `new_*` is the increase since the previous day.
# `lagged_new_*` is the increase over the previous `lag` days.
# Differences are never clamped, so corrections show up as negative values.

# %%
daily = add_daily_differences(daily, lag=3)
daily

# %% [markdown]
# ## Weekly totals
#
# By default, weeks start on Sunday.

# %%
weekly = aggregate_weekly(daily)
weekly

# %% [markdown]
# ## Rates

# %%
populations = pd.Series({"A": 2_000.0, "B": 500.0})
add_per_1000_rates(weekly, populations, count_columns=["new_cases"])

# %% [markdown]
# ## Consolidating regions
#
# When regions are consolidated,
# counts are summed before dividing by the total population.
# This is different to averaging the per-1000 rates,
# which would give "B" the same weight as "A"
# despite its much smaller population.

# %%
consolidate(
    weekly,
    group_membership_predicate=lambda region: True,
    populations=populations,
    group_name="A and B",
)

# %%
add_per_1000_rates(weekly, populations, count_columns=["new_cases"])[
    "cases_per_1000"
].groupby(level="year_week").mean()
