"""
Event Core Builder for seagrass2obis
One Event per sampled transect point: eventID, date, site coordinates and depth
"""

import logging

logger = logging.getLogger(__name__)

EVENT_SOURCE_COLUMNS = ['date', 'lat', 'long', 'transect_dist', 'depth', 'eventID']

EVENT_COLUMN_RENAMES = {
    'date': 'eventDate',
    'lat': 'decimalLatitude',
    'long': 'decimalLongitude',
    'transect_dist': 'coordinateUncertaintyInMeters',
    'depth': 'minimumDepthInMeters',
}

EVENT_OUTPUT_COLUMNS_IN_ORDER = [
    'eventDate',
    'decimalLatitude',
    'decimalLongitude',
    'coordinateUncertaintyInMeters',
    'minimumDepthInMeters',
    'maximumDepthInMeters',
    'eventID',
    'geodeticDatum',
    'samplingEffort',
]

DEFAULT_GEODETIC_DATUM = 'WGS84'
DEFAULT_SAMPLING_EFFORT = '30 m transect'


def create_event_core(keyed_df, params=None, reporter=None):
    """Project merged, identified observations onto the Event table."""
    params = params or {}
    if reporter:
        reporter.add_section("Creating Event Core", level=2)

    events = keyed_df[EVENT_SOURCE_COLUMNS].copy()
    events['date'] = events['date'].map(lambda d: d.strftime('%Y-%m-%d'))
    events['transect_dist'] = events['transect_dist'].astype(object)
    events = events.drop_duplicates()

    events = events.rename(columns=EVENT_COLUMN_RENAMES)
    # Depth is a single reading, so it bounds the event on both sides
    events['maximumDepthInMeters'] = events['minimumDepthInMeters']
    events['geodeticDatum'] = params.get('geodetic_datum', DEFAULT_GEODETIC_DATUM)
    events['samplingEffort'] = params.get('sampling_effort', DEFAULT_SAMPLING_EFFORT)

    events = (events[EVENT_OUTPUT_COLUMNS_IN_ORDER]
              .sort_values(['eventID', 'minimumDepthInMeters'], kind='mergesort', na_position='last')
              .reset_index(drop=True))

    repeated = events['eventID'].duplicated(keep=False)
    if repeated.any():
        ids = sorted(events.loc[repeated, 'eventID'].unique())
        message = (f"{len(ids)} eventID(s) appear on more than one Event row because their "
                   f"observations disagree on depth or coordinates: {ids[:10]}")
        logger.warning(message)
        if reporter:
            reporter.add_warning(message)

    logger.info(f"Created {len(events)} Event records")
    if reporter:
        reporter.add_success(f"Event core created with {len(events)} record(s)")
        reporter.add_dataframe(events, "Event Core Preview", max_rows=5)
    return events
