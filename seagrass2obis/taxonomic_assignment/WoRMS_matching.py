import logging

import pyworms

from seagrass2obis.exceptions import TaxonLookupError

logger = logging.getLogger(__name__)

# Zostera marina
DEFAULT_APHIA_ID = 145795

# Fields of the WoRMS AphiaRecord carried into the Occurrence table, in output order
WORMS_RECORD_FIELDS = [
    'AphiaID', 'url', 'authority', 'status', 'unacceptreason', 'taxonRankID', 'rank',
    'valid_AphiaID', 'valid_name', 'valid_authority', 'parentNameUsageID',
    'kingdom', 'phylum', 'class', 'order', 'family', 'genus',
    'citation', 'lsid', 'isMarine', 'match_type', 'modified', 'scientificname',
]

# Blank for an accepted name, so an empty column is expected
NULLABLE_RECORD_FIELDS = ['unacceptreason']


def get_worms_record_by_id(aphia_id=DEFAULT_APHIA_ID):
    """Fetch the WoRMS record for a single AphiaID.

    One blocking request, no retries. Any failure (network error, unknown
    AphiaID, a record missing expected fields) raises TaxonLookupError since
    the Occurrence table cannot be built without it.
    """
    logger.info(f"Fetching WoRMS record for AphiaID {aphia_id}")
    try:
        record = pyworms.aphiaRecordByAphiaID(aphia_id)
    except Exception as e:
        raise TaxonLookupError(f"WoRMS lookup for AphiaID {aphia_id} failed: {e}") from e

    if not record or not isinstance(record, dict):
        raise TaxonLookupError(f"WoRMS returned no record for AphiaID {aphia_id}")

    missing = [field for field in WORMS_RECORD_FIELDS if field not in record]
    if missing:
        raise TaxonLookupError(f"WoRMS record for AphiaID {aphia_id} is missing fields: {missing}")

    if record.get('status') != 'accepted':
        logger.warning(f"WoRMS AphiaID {aphia_id} ({record.get('scientificname')}) has status "
                       f"'{record.get('status')}'; valid name is '{record.get('valid_name')}'")

    return {field: record[field] for field in WORMS_RECORD_FIELDS}
