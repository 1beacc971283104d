"""
Extended Measurement or Fact (eMoF) Builder for seagrass2obis

Key behavior (event-based, long format):
- One row per merged observation per measurementType. Measurements with no
  recorded value still produce a row, with an empty measurementValue, so the
  table always holds len(observations) x len(MEASUREMENT_SOURCE_COLUMNS) rows.
- The habitat survey's two-valued substrate column ('Sand,Shell') is split
  into two measurement columns before the reshape.
- Every row is annotated from the measurement vocabulary by measurementType.
  Types missing from the vocabulary get empty annotation fields and a warning.
"""

import logging

import pandas as pd

from seagrass2obis.create_eMoF.measurement_vocabulary import load_measurement_vocabulary

logger = logging.getLogger(__name__)

SUBSTRATE_DELIMITER = ','

# Source column -> measurementType, in output order
MEASUREMENT_SOURCE_COLUMNS = {
    'density_msq': 'BedAbund',
    'canopy_height_cm': 'CanopyHeight',
    'substrate_1': 'Substrate1',
    'substrate_2': 'Substrate2',
    'patchiness': 'Patchiness',
    'adjacent_habitat_1': 'AdjacentHabitat1',
    'adjacent_habitat_2': 'AdjacentHabitat2',
    'vegetation_1': 'Vegetation1',
    'vegetation_2': 'Vegetation2',
}

EMOF_OUTPUT_COLUMNS_IN_ORDER = [
    'eventID',
    'measurementDeterminedDate',
    'measurementType',
    'measurementValue',
    'measurementTypeID',
    'measurementUnit',
    'measurementUnitID',
    'measurementAccuracy',
    'measurementMethod',
]


def format_measurement_value(value):
    """Text form of a measurement: 45.0 -> '45', 12.5 -> '12.5', NaN -> None."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    return str(value)


def split_substrate(series, delimiter=SUBSTRATE_DELIMITER):
    """Split 'Sand,Shell' into ('Sand', 'Shell'); missing parts are None."""
    def _part(value, position):
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return None
        parts = [p.strip() for p in str(value).split(delimiter, 1)]
        if position < len(parts) and parts[position]:
            return parts[position]
        return None

    first = series.map(lambda v: _part(v, 0)).astype(object)
    second = series.map(lambda v: _part(v, 1)).astype(object)
    return first, second


def create_emof_table(keyed_df, params=None, reporter=None):
    """Reshape per-observation measurement columns into the long eMoF table."""
    params = params or {}
    if reporter:
        reporter.add_section("Creating eMoF (extendedMeasurementOrFact)", level=2)

    vocab_df = load_measurement_vocabulary(params.get('emof_vocabulary_path'))

    wide = keyed_df[['eventID', 'date', 'density_msq', 'canopy_height_cm', 'substrate', 'patchiness',
                     'adjacent_habitat_1', 'adjacent_habitat_2', 'vegetation_1', 'vegetation_2']].copy()
    wide['substrate_1'], wide['substrate_2'] = split_substrate(wide['substrate'])
    wide = wide.drop(columns=['substrate'])
    wide['date'] = wide['date'].map(lambda d: d.strftime('%Y-%m-%d'))
    # Keep each observation's measurements together once melted
    wide['_row'] = range(len(wide))

    wide = wide.rename(columns={'date': 'measurementDeterminedDate', **MEASUREMENT_SOURCE_COLUMNS})
    measurement_types = list(MEASUREMENT_SOURCE_COLUMNS.values())
    for col in measurement_types:
        wide[col] = wide[col].map(format_measurement_value).astype(object)

    emof_df = wide.melt(
        id_vars=['_row', 'eventID', 'measurementDeterminedDate'],
        value_vars=measurement_types,
        var_name='measurementType',
        value_name='measurementValue',
    )

    unmatched = sorted(set(measurement_types) - set(vocab_df['measurementType']))
    if unmatched:
        message = f"No vocabulary annotation for measurementType(s) {unmatched}; annotation fields left empty"
        logger.warning(message)
        if reporter:
            reporter.add_warning(message)

    emof_df = emof_df.merge(vocab_df, on='measurementType', how='left', validate='many_to_one')
    emof_df['measurementAccuracy'] = emof_df['measurementAccuracy'].map(format_measurement_value).astype(object)

    # Deterministic order: observation order, then the measurement order above
    emof_df['_type_order'] = emof_df['measurementType'].map(
        {name: i for i, name in enumerate(measurement_types)})
    emof_df = (emof_df.sort_values(['eventID', '_row', '_type_order'], kind='mergesort')
               [EMOF_OUTPUT_COLUMNS_IN_ORDER]
               .reset_index(drop=True))

    n_values = int(emof_df['measurementValue'].notna().sum())
    logger.info(f"Created {len(emof_df)} eMoF records ({n_values} with a value)")
    if reporter:
        reporter.add_success(f"eMoF created with {len(emof_df)} row(s) "
                             f"({len(keyed_df)} observations x {len(measurement_types)} measurement types, "
                             f"{n_values} with a recorded value)")
        reporter.add_dataframe(emof_df, "eMoF Preview", max_rows=15)
    return emof_df
