"""
Locations and expected layouts of the upstream datasets

The URLs point at fixed files in public repositories/portals.
If the upstream layout changes, the expected columns here
are what make loading fail loudly
(with a [SchemaMismatchError][casecounts.exceptions.SchemaMismatchError]).
"""

from __future__ import annotations

JHU_TIME_SERIES_BASE_URL = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/csse_covid_19_time_series"
)
"""
Base URL of the Johns Hopkins CSSE time series files
"""

JHU_GLOBAL_CASES_FILENAME = "time_series_covid19_confirmed_global.csv"
JHU_GLOBAL_DEATHS_FILENAME = "time_series_covid19_deaths_global.csv"
JHU_US_CASES_FILENAME = "time_series_covid19_confirmed_US.csv"
JHU_US_DEATHS_FILENAME = "time_series_covid19_deaths_US.csv"

JHU_UID_LOOKUP_URL = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/UID_ISO_FIPS_LookUp_Table.csv"
)
"""
URL of the lookup table from region name to population and identifying codes
"""

JHU_UID_LOOKUP_FILENAME = "UID_ISO_FIPS_LookUp_Table.csv"

JHU_DATE_FORMAT = "%m/%d/%y"
"""
Format of the date columns in the JHU time series files
"""

JHU_GLOBAL_ID_COLUMNS: tuple[str, ...] = (
    "Province/State",
    "Country/Region",
    "Lat",
    "Long",
)
"""
Identifying (i.e. non-date) columns of the global time series files
"""

JHU_US_CASES_ID_COLUMNS: tuple[str, ...] = (
    "UID",
    "iso2",
    "iso3",
    "code3",
    "FIPS",
    "Admin2",
    "Province_State",
    "Country_Region",
    "Lat",
    "Long_",
    "Combined_Key",
)
"""
Identifying (i.e. non-date) columns of the US cases time series file
"""

JHU_US_DEATHS_ID_COLUMNS: tuple[str, ...] = (*JHU_US_CASES_ID_COLUMNS, "Population")
"""
Identifying (i.e. non-date) columns of the US deaths time series file

Unlike the cases file, this includes each county's population.
"""

JHU_UID_LOOKUP_COLUMNS: tuple[str, ...] = (
    "UID",
    "iso2",
    "iso3",
    "code3",
    "FIPS",
    "Admin2",
    "Province_State",
    "Country_Region",
    "Lat",
    "Long_",
    "Combined_Key",
    "Population",
)
"""
Columns of the UID lookup table
"""

NYPD_SHOOTING_URL = (
    "https://data.cityofnewyork.us/api/views/833y-fsy8/rows.csv?accessType=DOWNLOAD"
)
"""
URL of the NYPD Shooting Incident Data (Historic) CSV export
"""

NYPD_SHOOTING_FILENAME = "NYPD_Shooting_Incident_Data__Historic_.csv"

NYPD_DATE_FORMAT = "%m/%d/%Y"
"""
Format of `OCCUR_DATE` in the NYPD data
"""

NYPD_TIME_FORMAT = "%H:%M:%S"
"""
Format of `OCCUR_TIME` in the NYPD data
"""

NYPD_SHOOTING_COLUMNS: tuple[str, ...] = (
    "INCIDENT_KEY",
    "OCCUR_DATE",
    "OCCUR_TIME",
    "BORO",
    "PRECINCT",
    "JURISDICTION_CODE",
    "LOCATION_DESC",
    "STATISTICAL_MURDER_FLAG",
    "PERP_AGE_GROUP",
    "PERP_SEX",
    "PERP_RACE",
    "VIC_AGE_GROUP",
    "VIC_SEX",
    "VIC_RACE",
    "X_COORD_CD",
    "Y_COORD_CD",
    "Latitude",
    "Longitude",
)
"""
Columns of the NYPD data which the report relies on

Later releases added `LOC_OF_OCCUR_DESC`, `LOC_CLASSFCTN_DESC` and `Lon_Lat`.
We don't use them, so they are not required.
"""

NYC_BOROUGH_POPULATION: dict[str, int] = {
    "BRONX": 1_472_654,
    "BROOKLYN": 2_736_074,
    "MANHATTAN": 1_694_251,
    "QUEENS": 2_405_464,
    "STATEN ISLAND": 495_747,
}
"""
Population of each borough in the 2020 US census

Keys match the `BORO` values in the NYPD data.
"""


def get_jhu_time_series_url(filename: str) -> str:
    """
    Get the URL of a JHU time series file

    Parameters
    ----------
    filename
        Name of the file

    Returns
    -------
    :
        URL from which to download `filename`
    """
    return f"{JHU_TIME_SERIES_BASE_URL}/{filename}"
