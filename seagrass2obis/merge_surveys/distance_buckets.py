"""
Distance bucket mapping for the habitat survey

The density survey samples the 30 m transect at discrete points every 5 m,
while the habitat survey describes contiguous sections of the same transect
(5 m sections in most years, 2.5 m offset sections in others). Before the two
surveys can be joined, each habitat section is collapsed onto the density
point at its far end, and the starting section is additionally copied onto
the 0 m point, which has no preceding section of its own.
"""

import logging
import re
from typing import NamedTuple

import pandas as pd

from seagrass2obis.exceptions import DataIntegrityError

logger = logging.getLogger(__name__)

# Points sampled by the density survey, in transect order
DENSITY_POINTS = ['0', '5', '10', '15', '20', '25', '30']

COARSE_SECTIONS = ['0 - 5', '5 - 10', '10 - 15', '15 - 20', '20 - 25', '25 - 30']
FINE_SECTIONS = ['0 - 2.5', '2.5 - 7.5', '7.5 - 12.5', '12.5 - 17.5',
                 '17.5 - 22.5', '22.5 - 27.5', '27.5 - 30']

ZERO_POINT = '0'
STARTING_SECTIONS = ('0 - 5', '0 - 2.5')
# Starting sections that only ever describe the 0 m point
REDUNDANT_SECTIONS = ('0 - 2.5',)

SECTION_TO_POINT = {
    '0 - 5': '5', '2.5 - 7.5': '5',
    '5 - 10': '10', '7.5 - 12.5': '10',
    '10 - 15': '15', '12.5 - 17.5': '15',
    '15 - 20': '20', '17.5 - 22.5': '20',
    '20 - 25': '25', '22.5 - 27.5': '25',
    '25 - 30': '30', '27.5 - 30': '30',
}

DENSITY_DISTANCE_DTYPE = pd.CategoricalDtype(categories=DENSITY_POINTS, ordered=True)

_RANGE_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)\s*$')
_POINT_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*$')


def _format_number(text):
    value = float(text)
    if value.is_integer():
        return str(int(value))
    return str(value)


def normalize_distance_label(label):
    """Canonical spelling of a distance label, or None if it is not one.

    '10.0' -> '10', '0-5' -> '0 - 5', ' 2.5 -7.5' -> '2.5 - 7.5'
    """
    if label is None or pd.isna(label):
        return None
    text = str(label)
    match = _RANGE_PATTERN.match(text)
    if match:
        return f"{_format_number(match.group(1))} - {_format_number(match.group(2))}"
    match = _POINT_PATTERN.match(text)
    if match:
        return _format_number(match.group(1))
    return None


def section_bounds(label):
    """(start, end) in metres for a canonical section label."""
    match = _RANGE_PATTERN.match(str(label))
    if not match:
        raise ValueError(f"Not a transect section label: {label!r}")
    return float(match.group(1)), float(match.group(2))


def habitat_section_dtype(observed_labels=()):
    """Ordered categorical over the known sections plus any well-formed extras.

    Extra sections are allowed through normalization so that the bucket mapper,
    not the parser, decides what to do with sections it has no point for.
    """
    known = set(COARSE_SECTIONS) | set(FINE_SECTIONS)
    extras = {label for label in observed_labels if label is not None and label not in known}
    categories = sorted(known | extras, key=section_bounds)
    return pd.CategoricalDtype(categories=categories, ordered=True)


def map_section_label(label):
    """Density point a habitat section collapses onto; None when there is none."""
    return SECTION_TO_POINT.get(label)


class BucketMappingResult(NamedTuple):
    mapped: pd.DataFrame
    unmapped: pd.DataFrame


def map_habitat_distances(habitat_df, params=None, reporter=None):
    """Relabel habitat sections with density points.

    Returns a BucketMappingResult. 'mapped' holds one row per (section, point)
    pairing with 'transect_dist' on the density point scale and the original
    label kept in 'habitat_section'. 'unmapped' holds rows whose section had no
    target point; they are left out of 'mapped'.
    """
    params = params or {}
    policy = params.get('unmapped_distance_policy', 'warn')

    df = habitat_df.copy()
    df['habitat_section'] = df['transect_dist'].astype(object)

    # Starting sections are duplicated onto the 0 m point
    starting = df[df['habitat_section'].isin(STARTING_SECTIONS)].copy()
    starting['transect_dist'] = ZERO_POINT

    # Everything else collapses to the far end of its section
    rest = df[~df['habitat_section'].isin(REDUNDANT_SECTIONS)].copy()
    rest['transect_dist'] = rest['habitat_section'].map(map_section_label)

    unmapped_mask = rest['transect_dist'].isna()
    unmapped = rest[unmapped_mask].copy()
    rest = rest[~unmapped_mask]

    if not unmapped.empty:
        labels = sorted(unmapped['habitat_section'].unique(), key=section_bounds)
        message = (f"{len(unmapped)} habitat row(s) have transect sections with no matching "
                   f"density point and were dropped: {labels}")
        if policy == 'error':
            if reporter:
                reporter.add_error(message)
            raise DataIntegrityError('habitat', 'transect_dist', message,
                                     rows=unmapped.index.tolist())
        logger.warning(message)
        if reporter:
            reporter.add_warning(message)

    # Stable sort on the original row position keeps each 0 m copy next to its source row
    mapped = pd.concat([starting, rest]).sort_index(kind='mergesort').reset_index(drop=True)
    mapped['transect_dist'] = mapped['transect_dist'].astype(DENSITY_DISTANCE_DTYPE)

    logger.info(f"Mapped {len(habitat_df)} habitat rows onto {len(mapped)} density-point rows "
                f"({len(starting)} copied to the 0 m point, {len(unmapped)} dropped)")
    if reporter:
        reporter.add_text(f"Mapped {len(habitat_df)} habitat sections onto {len(mapped)} transect points: "
                          f"{len(starting)} starting section(s) copied to 0 m, {len(unmapped)} unmapped.")

    return BucketMappingResult(mapped=mapped, unmapped=unmapped.reset_index(drop=True))
