"""
Exploratory reports on public case count data

COVID-19 cases and deaths (Johns Hopkins University CSSE)
and NYPD shooting incidents.
"""

import importlib.metadata

__version__ = importlib.metadata.version("casecounts")
