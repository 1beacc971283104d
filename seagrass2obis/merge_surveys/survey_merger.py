"""
Survey Merger for seagrass2obis
Full outer join of the density survey with the bucket-mapped habitat survey,
followed by field-level conflict resolution and the coordinate lookup.

Fields recorded by both surveys are tagged with the survey they came from
('<field>_density', '<field>_habitat') and resolved through
CONFLICT_RESOLUTION, an explicit precedence table. Density surveys are the
more frequent, point-in-time record, so their values win whenever present.
"""

import logging

import pandas as pd

logger = logging.getLogger(__name__)

DENSITY = 'density'
HABITAT = 'habitat'

MERGE_KEYS = ['organization', 'work_area', 'project', 'survey', 'site_id', 'date', 'transect_dist']

# Shared attribute -> surveys in order of precedence
CONFLICT_RESOLUTION = {
    'depth': (DENSITY, HABITAT),
    'collected_start': (DENSITY, HABITAT),
    'collected_end': (DENSITY, HABITAT),
    'dive_supervisor': (DENSITY, HABITAT),
    'sampling_bout': (DENSITY, HABITAT),
}

NA_SENTINEL = 'NA'

_MERGE_SOURCE_LABELS = {'both': 'both', 'left_only': 'density_only', 'right_only': 'habitat_only'}


def resolve_field(merged_df, field, precedence=(DENSITY, HABITAT)):
    """First non-null value of 'field' across the tagged survey columns."""
    tagged = [merged_df[f"{field}_{source}"] for source in precedence]
    resolved = tagged[0]
    for fallback in tagged[1:]:
        resolved = resolved.where(resolved.notna(), fallback)
    return resolved


def resolve_conflicts(merged_df, table=None):
    """Collapse every tagged pair in the precedence table into a single column."""
    table = table or CONFLICT_RESOLUTION
    df = merged_df.copy()
    for field, precedence in table.items():
        df[field] = resolve_field(df, field, precedence)
        df = df.drop(columns=[f"{field}_{source}" for source in precedence])
    return df


def resolve_sample_identifier(merged_df):
    """hakai_id from the density survey when a sample was collected, else 'NA'.

    The habitat survey's identifier never survives: only the density survey
    records whether a physical sample left the site.
    """
    collected = merged_df['sample_collected'].eq(True)
    density_id = merged_df['hakai_id_density']
    return density_id.where(collected & density_id.notna(), NA_SENTINEL).astype(object), collected


def _report_duplicate_keys(df, table, reporter):
    duplicated = df.duplicated(MERGE_KEYS, keep=False)
    if duplicated.any():
        n_keys = len(df.loc[duplicated, MERGE_KEYS].drop_duplicates())
        message = (f"{table} survey has {int(duplicated.sum())} rows sharing {n_keys} merge key(s); "
                   f"they will be joined many-to-many")
        logger.warning(message)
        if reporter:
            reporter.add_warning(message)


def attach_coordinates(merged_df, coordinates_df, reporter=None):
    """Left join lat/long by site_id; unknown sites keep null coordinates."""
    merged = merged_df.merge(coordinates_df, on='site_id', how='left', validate='many_to_one')
    missing_sites = sorted(merged.loc[merged['lat'].isna() | merged['long'].isna(), 'site_id']
                           .dropna().unique())
    if missing_sites:
        message = f"No coordinates for {len(missing_sites)} site(s): {missing_sites}"
        logger.warning(message)
        if reporter:
            reporter.add_warning(message)
    return merged


def merge_surveys(density_df, habitat_df, coordinates_df, params=None, reporter=None):
    """Build one MergedObservation row per joined (density, habitat) pairing.

    habitat_df must already be bucket-mapped onto density points.
    """
    if reporter:
        reporter.add_section("Merging Density and Habitat Surveys", level=2)

    _report_duplicate_keys(density_df, 'density', reporter)
    _report_duplicate_keys(habitat_df, 'habitat', reporter)

    merged = density_df.merge(
        habitat_df,
        on=MERGE_KEYS,
        how='outer',
        suffixes=(f"_{DENSITY}", f"_{HABITAT}"),
        indicator='_merge_source',
    )
    merged['_merge_source'] = merged['_merge_source'].astype(str).map(_MERGE_SOURCE_LABELS)

    merged = resolve_conflicts(merged)

    merged['hakai_id'], merged['sample_collected'] = resolve_sample_identifier(merged)
    merged = merged.drop(columns=['hakai_id_density', 'hakai_id_habitat'])

    merged = attach_coordinates(merged, coordinates_df, reporter)

    merged = merged.sort_values(MERGE_KEYS + ['habitat_section'], kind='mergesort',
                                na_position='last').reset_index(drop=True)

    counts = merged['_merge_source'].value_counts()
    summary = {label: int(counts.get(label, 0)) for label in _MERGE_SOURCE_LABELS.values()}
    logger.info(f"Merged surveys into {len(merged)} observations {summary}")
    if reporter:
        reporter.add_list([
            f"Matched density and habitat rows: {summary['both']}",
            f"Density rows without habitat data: {summary['density_only']}",
            f"Habitat rows without density data: {summary['habitat_only']}",
        ], "Merge summary:")
        reporter.add_success(f"Merged surveys into {len(merged)} observations")
    return merged
