"""
Controlled vocabulary annotations for the eMoF measurement types.

The built-in table can be replaced with a tab-separated file holding the same
columns (config key 'emof_vocabulary_path').
"""

import os

import pandas as pd

VOCABULARY_COLUMNS = [
    'measurementType',
    'measurementTypeID',
    'measurementUnit',
    'measurementUnitID',
    'measurementAccuracy',
    'measurementMethod',
]

_NOT_APPLICABLE = 'Not applicable'
_NOT_APPLICABLE_ID = 'http://vocab.nerc.ac.uk/collection/P06/current/XXXX/'
_HABITAT_METHOD = ('Visual assessment by SCUBA diver of the 5 m transect section '
                   'ending at this point')

MEASUREMENT_VOCABULARY = [
    {
        'measurementType': 'BedAbund',
        'measurementTypeID': 'http://vocab.nerc.ac.uk/collection/P01/current/SDBIOL10/',
        'measurementUnit': 'Number per square metre',
        'measurementUnitID': 'http://vocab.nerc.ac.uk/collection/P06/current/UPMS/',
        'measurementAccuracy': None,
        'measurementMethod': 'Shoots counted by SCUBA diver within a quadrat and scaled to one square metre',
    },
    {
        'measurementType': 'CanopyHeight',
        'measurementTypeID': 'http://vocab.nerc.ac.uk/collection/P01/current/OBSMAXLX/',
        'measurementUnit': 'Centimetres',
        'measurementUnitID': 'http://vocab.nerc.ac.uk/collection/P06/current/ULCM/',
        'measurementAccuracy': 1,
        'measurementMethod': 'Height of the seagrass canopy measured by SCUBA diver from the sediment surface',
    },
    {
        'measurementType': 'Substrate1',
        'measurementTypeID': 'http://vocab.nerc.ac.uk/collection/P01/current/SEDTYPE1/',
        'measurementUnit': _NOT_APPLICABLE,
        'measurementUnitID': _NOT_APPLICABLE_ID,
        'measurementAccuracy': None,
        'measurementMethod': f"{_HABITAT_METHOD}; dominant substrate",
    },
    {
        'measurementType': 'Substrate2',
        'measurementTypeID': 'http://vocab.nerc.ac.uk/collection/P01/current/SEDTYPE1/',
        'measurementUnit': _NOT_APPLICABLE,
        'measurementUnitID': _NOT_APPLICABLE_ID,
        'measurementAccuracy': None,
        'measurementMethod': f"{_HABITAT_METHOD}; secondary substrate",
    },
    {
        'measurementType': 'Patchiness',
        'measurementTypeID': 'http://vocab.nerc.ac.uk/collection/P01/current/PATCHNSS/',
        'measurementUnit': _NOT_APPLICABLE,
        'measurementUnitID': _NOT_APPLICABLE_ID,
        'measurementAccuracy': None,
        'measurementMethod': f"{_HABITAT_METHOD}; patchiness of the seagrass bed",
    },
    {
        'measurementType': 'AdjacentHabitat1',
        'measurementTypeID': 'http://vocab.nerc.ac.uk/collection/P01/current/HABTYPE1/',
        'measurementUnit': _NOT_APPLICABLE,
        'measurementUnitID': _NOT_APPLICABLE_ID,
        'measurementAccuracy': None,
        'measurementMethod': f"{_HABITAT_METHOD}; primary habitat adjacent to the bed",
    },
    {
        'measurementType': 'AdjacentHabitat2',
        'measurementTypeID': 'http://vocab.nerc.ac.uk/collection/P01/current/HABTYPE1/',
        'measurementUnit': _NOT_APPLICABLE,
        'measurementUnitID': _NOT_APPLICABLE_ID,
        'measurementAccuracy': None,
        'measurementMethod': f"{_HABITAT_METHOD}; secondary habitat adjacent to the bed",
    },
    {
        'measurementType': 'Vegetation1',
        'measurementTypeID': 'http://vocab.nerc.ac.uk/collection/P01/current/VEGTYPE1/',
        'measurementUnit': _NOT_APPLICABLE,
        'measurementUnitID': _NOT_APPLICABLE_ID,
        'measurementAccuracy': None,
        'measurementMethod': f"{_HABITAT_METHOD}; dominant associated vegetation",
    },
    {
        'measurementType': 'Vegetation2',
        'measurementTypeID': 'http://vocab.nerc.ac.uk/collection/P01/current/VEGTYPE1/',
        'measurementUnit': _NOT_APPLICABLE,
        'measurementUnitID': _NOT_APPLICABLE_ID,
        'measurementAccuracy': None,
        'measurementMethod': f"{_HABITAT_METHOD}; secondary associated vegetation",
    },
]


def load_measurement_vocabulary(path=None):
    """Vocabulary table as a DataFrame, from 'path' if given, else the built-in one."""
    if not path:
        return pd.DataFrame(MEASUREMENT_VOCABULARY, columns=VOCABULARY_COLUMNS)

    if not os.path.exists(path):
        raise FileNotFoundError(f"eMoF vocabulary file not found: {path}")

    vocab_df = pd.read_csv(path, sep='\t', dtype=object, keep_default_na=False, na_values=[''])
    vocab_df.columns = [str(c).strip() for c in vocab_df.columns]
    missing_cols = [c for c in VOCABULARY_COLUMNS if c not in vocab_df.columns]
    if missing_cols:
        raise ValueError(f"eMoF vocabulary file {path} is missing columns: {missing_cols}")

    vocab_df = vocab_df[VOCABULARY_COLUMNS]
    vocab_df = vocab_df[vocab_df['measurementType'].notna()]
    if vocab_df['measurementType'].duplicated().any():
        dupes = sorted(vocab_df.loc[vocab_df['measurementType'].duplicated(), 'measurementType'])
        raise ValueError(f"eMoF vocabulary file {path} lists measurementType(s) more than once: {dupes}")
    return vocab_df.reset_index(drop=True)
