"""
Deterministic eventID and occurrenceID construction.

Both identifiers are built only from attributes of the merged observation, so
re-running the conversion on the same surveys reproduces the identifiers that
downstream users have already cited.

    eventID      = date:TAG:site_id:transect_dist
    occurrenceID = eventID:transect_dist:hakai_id   (hakai_id is 'NA' without a sample)
"""

import datetime

import pandas as pd

DEFAULT_EVENT_ID_TAG = 'HAKAI:CALVERT'
DEFAULT_DELIMITER = ':'
NA_SENTINEL = 'NA'


def _id_component(value):
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return NA_SENTINEL
    if isinstance(value, datetime.date):
        return value.strftime('%Y-%m-%d')
    return str(value)


def create_event_id(date, site_id, transect_dist, tag=DEFAULT_EVENT_ID_TAG, delimiter=DEFAULT_DELIMITER):
    """'2020-07-01', 'S1', '10' -> '2020-07-01:HAKAI:CALVERT:S1:10'"""
    return delimiter.join([_id_component(date), tag, _id_component(site_id), _id_component(transect_dist)])


def create_occurrence_id(event_id, transect_dist, hakai_id, delimiter=DEFAULT_DELIMITER):
    """Event ID extended with the transect point and the sample identifier (or 'NA')."""
    return delimiter.join([event_id, _id_component(transect_dist), _id_component(hakai_id)])


def assign_identifiers(merged_df, params=None):
    """Copy of merged_df with 'eventID' and 'occurrenceID' columns added."""
    params = params or {}
    tag = params.get('event_id_tag', DEFAULT_EVENT_ID_TAG)
    delimiter = params.get('id_delimiter', DEFAULT_DELIMITER)

    df = merged_df.copy()
    distances = df['transect_dist'].astype(object)
    df['eventID'] = [
        create_event_id(date, site, dist, tag=tag, delimiter=delimiter)
        for date, site, dist in zip(df['date'], df['site_id'], distances)
    ]
    df['occurrenceID'] = [
        create_occurrence_id(event_id, dist, hakai_id, delimiter=delimiter)
        for event_id, dist, hakai_id in zip(df['eventID'], distances, df['hakai_id'])
    ]
    return df
