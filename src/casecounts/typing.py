"""
Type hints that are used throughout
"""

from __future__ import annotations

from typing import Callable

import pandas as pd
from typing_extensions import TypeAlias

RegionPredicate: TypeAlias = Callable[[str], bool]
"""
Type alias for a function which decides whether a region belongs to a group
"""

WideDataFrame: TypeAlias = pd.DataFrame
"""
Type alias for the wide [pandas.DataFrame][pd.DataFrame] shape we download

For typing purposes, this is just a direct alias of [pandas.DataFrame][pd.DataFrame].
However, the point of defining this
is to provide greater clarity of the kind of data we expect.

We expect one row per entity (e.g. a country or a county).
The identifying fields of each entity are ordinary columns.
All other columns are dates, formatted as strings,
holding the cumulative value on that date.

```python
  Province/State Country/Region  1/22/20  1/23/20
0            NaN    Afghanistan        0        0
1            NaN        Albania        0        2
```
"""

LongDataFrame: TypeAlias = pd.DataFrame
"""
Type alias for the long [pandas.DataFrame][pd.DataFrame] shape

There is one row per (entity, date) pair.
The identifying fields, the date and the value(s) are all ordinary columns.

```python
  Province/State Country/Region       date  cases
0            NaN    Afghanistan 2020-01-22      0
1            NaN    Afghanistan 2020-01-23      0
```
"""

RegionTimeDataFrame: TypeAlias = pd.DataFrame
"""
Type alias for data indexed by region and time

The index is a [pandas.MultiIndex][pd.MultiIndex]
with (at least) a region level and a time level.
The columns are the metrics.

```python
                        new_cases  new_deaths
region  year_week
Albania 2020-03-08             10           0
        2020-03-15             32           1
```
"""
