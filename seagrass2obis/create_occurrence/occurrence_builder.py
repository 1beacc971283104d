"""
Occurrence Builder for seagrass2obis
One Occurrence per occurrenceID, carrying the WoRMS classification of the
surveyed seagrass. The taxonomy is a single registry record broadcast onto
every occurrence through a full outer join on the scientific name.
"""

import logging

import pandas as pd

from seagrass2obis.taxonomic_assignment.WoRMS_matching import WORMS_RECORD_FIELDS

logger = logging.getLogger(__name__)

OCCURRENCE_BASE_COLUMNS = ['eventID', 'occurrenceID', 'basisOfRecord', 'scientificName', 'occurrenceStatus']

DEFAULT_BASIS_OF_RECORD = 'HumanObservation'
DEFAULT_SCIENTIFIC_NAME = 'Zostera marina'
OCCURRENCE_STATUS = 'present'


def get_occurrence_column_order():
    """Base Darwin Core columns followed by the WoRMS fields (scientificname is folded into scientificName)."""
    return OCCURRENCE_BASE_COLUMNS + [f for f in WORMS_RECORD_FIELDS if f != 'scientificname']


def create_occurrence(keyed_df, worms_record, params=None, reporter=None):
    """Project merged, identified observations onto the Occurrence table."""
    params = params or {}
    if reporter:
        reporter.add_section("Creating Occurrence Extension", level=2)

    scientific_name = params.get('scientific_name', DEFAULT_SCIENTIFIC_NAME)
    occurrences = keyed_df[['eventID', 'occurrenceID']].drop_duplicates().copy()
    occurrences['basisOfRecord'] = params.get('basis_of_record', DEFAULT_BASIS_OF_RECORD)
    occurrences['scientificName'] = scientific_name
    occurrences['occurrenceStatus'] = OCCURRENCE_STATUS

    taxon_df = pd.DataFrame([worms_record], columns=WORMS_RECORD_FIELDS)
    if worms_record.get('scientificname') != scientific_name:
        message = (f"WoRMS record name '{worms_record.get('scientificname')}' does not match the "
                   f"configured scientific name '{scientific_name}'; "
                   f"occurrences will carry no taxonomy")
        logger.warning(message)
        if reporter:
            reporter.add_warning(message)

    occurrences = occurrences.merge(taxon_df, left_on='scientificName', right_on='scientificname', how='outer')
    # A taxonomy row that matched no occurrence still names its taxon
    occurrences['scientificName'] = occurrences['scientificName'].fillna(occurrences['scientificname'])
    occurrences = occurrences.drop(columns=['scientificname'])

    occurrences = (occurrences[get_occurrence_column_order()]
                   .sort_values(['occurrenceID'], kind='mergesort', na_position='last')
                   .reset_index(drop=True))

    logger.info(f"Created {len(occurrences)} Occurrence records")
    if reporter:
        reporter.add_success(f"Occurrence extension created with {len(occurrences)} record(s)")
        reporter.add_dataframe(occurrences, "Occurrence Preview", max_rows=5)
    return occurrences
