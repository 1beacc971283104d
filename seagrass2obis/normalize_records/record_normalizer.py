"""
Record Normalizer for seagrass2obis
Coerces the raw, all-text survey tables into typed DataFrames

- Dates are parsed strictly; a date that does not parse aborts the run.
- Transect distances are categorical labels, never numbers. Density points must
  come from the fixed point vocabulary; habitat sections must be well-formed
  ranges ("a - b"). Anything else aborts the run.
- Numeric fields become floats. Empty cells are null, never zero.
- Numeric sample identifiers are left-padded with zeros to a fixed width.
- Row counts never change.
"""

import logging

import pandas as pd

from seagrass2obis.exceptions import DataIntegrityError
from seagrass2obis.merge_surveys.distance_buckets import (
    DENSITY_DISTANCE_DTYPE,
    habitat_section_dtype,
    normalize_distance_label,
)

logger = logging.getLogger(__name__)

KEY_COLUMNS = ['organization', 'work_area', 'project', 'survey', 'site_id', 'date', 'transect_dist']

DENSITY_COLUMNS = KEY_COLUMNS + [
    'depth', 'collected_start', 'collected_end',
    'density', 'density_msq', 'canopy_height_cm', 'flowering_shoots',
    'sample_collected', 'hakai_id', 'dive_supervisor', 'sampling_bout',
]

HABITAT_COLUMNS = KEY_COLUMNS + [
    'depth', 'collected_start', 'collected_end', 'hakai_id',
    'dive_supervisor', 'sampling_bout',
    'substrate', 'patchiness',
    'adjacent_habitat_1', 'adjacent_habitat_2',
    'vegetation_1', 'vegetation_2',
]
# Habitat columns that older survey exports do not carry
OPTIONAL_HABITAT_COLUMNS = ['hakai_id', 'collected_start', 'collected_end',
                            'dive_supervisor', 'sampling_bout']

COORDINATE_COLUMNS = ['site_id', 'lat', 'long']

DENSITY_NUMERIC_COLUMNS = ['depth', 'density', 'density_msq', 'canopy_height_cm', 'flowering_shoots']
HABITAT_NUMERIC_COLUMNS = ['depth']
TIMESTAMP_COLUMNS = ['collected_start', 'collected_end']

DENSITY_TEXT_COLUMNS = ['organization', 'work_area', 'project', 'survey', 'site_id',
                        'hakai_id', 'dive_supervisor', 'sampling_bout']
HABITAT_TEXT_COLUMNS = DENSITY_TEXT_COLUMNS + ['substrate', 'patchiness',
                                               'adjacent_habitat_1', 'adjacent_habitat_2',
                                               'vegetation_1', 'vegetation_2']

# Cell contents that mean "no value" in the survey exports
EMPTY_TOKENS = {'', 'NA', 'N/A', 'NaN', 'nan', 'NULL', 'null', 'None'}

TRUE_TOKENS = {'true', 't', '1', 'yes', 'y'}
FALSE_TOKENS = {'false', 'f', '0', 'no', 'n'}

DEFAULT_PAD_WIDTH = 5


def clean_text(series):
    """Strip whitespace and turn empty tokens into None."""
    def _clean(value):
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return None
        text = str(value).strip()
        return None if text in EMPTY_TOKENS else text
    return series.map(_clean).astype(object)


def parse_dates(series, column, table):
    """Parse YYYY-MM-DD strings into datetime.date values."""
    cleaned = clean_text(series)
    parsed = pd.to_datetime(cleaned, format='%Y-%m-%d', errors='coerce')
    bad = parsed.isna()
    if bad.any():
        raise DataIntegrityError(table, column, "missing or malformed date (expected YYYY-MM-DD)",
                                 rows=series.index[bad].tolist())
    return parsed.dt.date


def parse_timestamps(series, column, table, reporter=None):
    """Parse collection timestamps into UTC; naive values are taken as UTC."""
    cleaned = clean_text(series)
    # Summer (-07:00) and winter (-08:00) readings share a column
    parsed = pd.to_datetime(cleaned, errors='coerce', format='mixed', utc=True)
    bad = parsed.isna() & cleaned.notna()
    if bad.any():
        message = f"{table}.{column}: {int(bad.sum())} timestamp(s) could not be parsed and were set to null"
        logger.warning(message)
        if reporter:
            reporter.add_warning(message)
    return parsed


def parse_numeric(series, column, table, policy='warn', reporter=None):
    """Parse text into floats; empty cells become NaN."""
    cleaned = clean_text(series)
    parsed = pd.to_numeric(cleaned, errors='coerce').astype(float)
    bad = parsed.isna() & cleaned.notna()
    if bad.any():
        examples = sorted(set(cleaned[bad]))[:5]
        if policy == 'error':
            raise DataIntegrityError(table, column, f"non-numeric values {examples}",
                                     rows=series.index[bad].tolist())
        message = (f"{table}.{column}: {int(bad.sum())} non-numeric value(s) set to null "
                   f"(e.g. {examples})")
        logger.warning(message)
        if reporter:
            reporter.add_warning(message)
    return parsed


def parse_flag(series, column, table):
    """Parse a TRUE/FALSE column; empty cells are False."""
    def _flag(value):
        if value is None:
            return False
        token = value.lower()
        if token in TRUE_TOKENS:
            return True
        if token in FALSE_TOKENS:
            return False
        return None

    parsed = clean_text(series).map(_flag)
    bad = parsed.isna()
    if bad.any():
        raise DataIntegrityError(table, column, "unrecognised boolean value",
                                 rows=series.index[bad].tolist())
    return parsed.astype(bool)


def pad_identifier(value, width=DEFAULT_PAD_WIDTH):
    """Left-pad a purely numeric identifier with zeros: '123' -> '00123'."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    text = str(value).strip()
    if text.isdigit() and len(text) < width:
        return text.zfill(width)
    return text


def parse_distance(series, column, table, dtype):
    """Convert distance labels to a categorical over a fixed vocabulary."""
    labels = clean_text(series).map(normalize_distance_label)
    parsed = pd.Series(pd.Categorical(labels, dtype=dtype), index=series.index)
    bad = parsed.isna()
    if bad.any():
        examples = sorted({str(v) for v in series[bad]})[:5]
        raise DataIntegrityError(table, column,
                                 f"transect distance not in vocabulary {list(dtype.categories)}: {examples}",
                                 rows=series.index[bad].tolist())
    return parsed


def _require_columns(df, columns, table, optional=()):
    missing = [c for c in columns if c not in df.columns and c not in optional]
    if missing:
        raise DataIntegrityError(table, ', '.join(missing), "required column(s) missing from input")


def normalize_density(raw_df, params=None, reporter=None):
    """Typed copy of the density survey table."""
    params = params or {}
    policy = params.get('numeric_parse_policy', 'warn')
    width = params.get('identifier_pad_width', DEFAULT_PAD_WIDTH)

    _require_columns(raw_df, DENSITY_COLUMNS, 'density')
    df = raw_df[DENSITY_COLUMNS].copy()

    for col in DENSITY_TEXT_COLUMNS:
        df[col] = clean_text(df[col])
    df['date'] = parse_dates(df['date'], 'date', 'density')
    df['transect_dist'] = parse_distance(df['transect_dist'], 'transect_dist', 'density',
                                         DENSITY_DISTANCE_DTYPE)
    for col in DENSITY_NUMERIC_COLUMNS:
        df[col] = parse_numeric(df[col], col, 'density', policy, reporter)
    for col in TIMESTAMP_COLUMNS:
        df[col] = parse_timestamps(df[col], col, 'density', reporter)
    df['sample_collected'] = parse_flag(df['sample_collected'], 'sample_collected', 'density')
    df['hakai_id'] = df['hakai_id'].map(lambda v: pad_identifier(v, width)).astype(object)

    logger.info(f"Normalized {len(df)} density rows")
    if reporter:
        reporter.add_text(f"Normalized density survey: {len(df)} rows, "
                          f"{int(df['sample_collected'].sum())} with a collected sample")
    return df


def normalize_habitat(raw_df, params=None, reporter=None):
    """Typed copy of the habitat survey table; transect_dist stays a section label."""
    params = params or {}
    policy = params.get('numeric_parse_policy', 'warn')
    width = params.get('identifier_pad_width', DEFAULT_PAD_WIDTH)

    _require_columns(raw_df, HABITAT_COLUMNS, 'habitat', optional=OPTIONAL_HABITAT_COLUMNS)
    df = raw_df.copy()
    for col in OPTIONAL_HABITAT_COLUMNS:
        if col not in df.columns:
            df[col] = None
    df = df[HABITAT_COLUMNS].copy()

    for col in HABITAT_TEXT_COLUMNS:
        df[col] = clean_text(df[col])
    df['date'] = parse_dates(df['date'], 'date', 'habitat')
    observed = clean_text(df['transect_dist']).map(normalize_distance_label)
    section_labels = [label for label in observed.dropna().unique() if ' - ' in label]
    df['transect_dist'] = parse_distance(df['transect_dist'], 'transect_dist', 'habitat',
                                         habitat_section_dtype(section_labels))
    for col in HABITAT_NUMERIC_COLUMNS:
        df[col] = parse_numeric(df[col], col, 'habitat', policy, reporter)
    for col in TIMESTAMP_COLUMNS:
        df[col] = parse_timestamps(df[col], col, 'habitat', reporter)
    df['hakai_id'] = df['hakai_id'].map(lambda v: pad_identifier(v, width)).astype(object)

    logger.info(f"Normalized {len(df)} habitat rows")
    if reporter:
        reporter.add_text(f"Normalized habitat survey: {len(df)} rows")
    return df


def normalize_coordinates(raw_df, params=None, reporter=None):
    """Typed copy of the site coordinate table, one row per site."""
    params = params or {}
    policy = params.get('numeric_parse_policy', 'warn')

    _require_columns(raw_df, COORDINATE_COLUMNS, 'coordinates')
    df = raw_df[COORDINATE_COLUMNS].copy()
    df['site_id'] = clean_text(df['site_id'])
    df['lat'] = parse_numeric(df['lat'], 'lat', 'coordinates', policy, reporter)
    df['long'] = parse_numeric(df['long'], 'long', 'coordinates', policy, reporter)

    df = df.drop_duplicates()
    conflicting = df['site_id'].duplicated(keep=False)
    if conflicting.any():
        sites = sorted(df.loc[conflicting, 'site_id'].dropna().unique())
        raise DataIntegrityError('coordinates', 'site_id',
                                 f"site(s) listed with more than one coordinate pair: {sites}",
                                 rows=df.index[conflicting].tolist())

    logger.info(f"Loaded coordinates for {len(df)} sites")
    return df.reset_index(drop=True)
