"""
Tests for the density/habitat outer merge and conflict resolution.

Run with: pytest tests/test_survey_merger.py -v
"""

import pandas as pd
import pytest

from seagrass2obis.merge_surveys.distance_buckets import map_habitat_distances
from seagrass2obis.merge_surveys.survey_merger import (
    CONFLICT_RESOLUTION,
    merge_surveys,
    resolve_field,
)
from seagrass2obis.normalize_records.record_normalizer import (
    normalize_coordinates,
    normalize_density,
    normalize_habitat,
)
from tests.survey_factory import make_density, make_habitat


def _merge(density_rows, habitat_rows, coordinates_raw, reporter=None):
    density = normalize_density(make_density(*density_rows))
    habitat = map_habitat_distances(normalize_habitat(make_habitat(*habitat_rows))).mapped
    coordinates = normalize_coordinates(coordinates_raw)
    return merge_surveys(density, habitat, coordinates, reporter=reporter)


class TestConflictResolution:

    def test_density_depth_wins(self, coordinates_raw):
        merged = _merge([{'depth': '3.2'}], [{'depth': '3.5'}], coordinates_raw)
        assert len(merged) == 1
        assert merged['depth'].iloc[0] == pytest.approx(3.2)

    def test_habitat_depth_fills_null_density(self, coordinates_raw):
        merged = _merge([{'depth': ''}], [{'depth': '3.5'}], coordinates_raw)
        assert merged['depth'].iloc[0] == pytest.approx(3.5)

    def test_tagged_columns_removed(self, coordinates_raw):
        merged = _merge([{}], [{}], coordinates_raw)
        for field in CONFLICT_RESOLUTION:
            assert field in merged.columns
            assert f"{field}_density" not in merged.columns
            assert f"{field}_habitat" not in merged.columns
        assert 'hakai_id_density' not in merged.columns

    def test_resolve_field_precedence(self):
        df = pd.DataFrame({'depth_density': [1.0, None, None], 'depth_habitat': [2.0, 2.5, None]})
        assert resolve_field(df, 'depth').tolist()[:2] == [1.0, 2.5]
        assert pd.isna(resolve_field(df, 'depth').iloc[2])

    def test_habitat_values_win_when_listed_first(self):
        df = pd.DataFrame({'depth_density': [1.0], 'depth_habitat': [2.0]})
        assert resolve_field(df, 'depth', ('habitat', 'density')).iloc[0] == 2.0


class TestOuterMerge:

    def test_unmatched_rows_kept_from_both_sides(self, coordinates_raw):
        merged = _merge(
            [{'transect_dist': '10'}, {'transect_dist': '25'}],
            [{'transect_dist': '5 - 10'}, {'transect_dist': '10 - 15'}],
            coordinates_raw,
        )
        assert merged['transect_dist'].tolist() == ['10', '15', '25']
        assert merged['_merge_source'].tolist() == ['both', 'habitat_only', 'density_only']

    def test_habitat_only_row_has_null_density_fields(self, coordinates_raw):
        merged = _merge([{'transect_dist': '25'}], [{'transect_dist': '10 - 15'}], coordinates_raw)
        habitat_only = merged[merged['_merge_source'] == 'habitat_only'].iloc[0]
        assert pd.isna(habitat_only['density_msq'])
        assert habitat_only['patchiness'] == 'Continuous'

    def test_starting_section_joins_zero_and_five(self, coordinates_raw):
        merged = _merge(
            [{'transect_dist': '0'}, {'transect_dist': '5'}],
            [{'transect_dist': '0 - 5', 'substrate': 'Mud'}],
            coordinates_raw,
        )
        assert merged['_merge_source'].tolist() == ['both', 'both']
        assert merged['substrate'].tolist() == ['Mud', 'Mud']

    def test_duplicate_keys_warn(self, coordinates_raw, reporter):
        merged = _merge([{}, {}], [{}], coordinates_raw, reporter=reporter)
        assert len(merged) == 2
        assert any('many-to-many' in w for w in reporter.warnings)


class TestSampleIdentifier:

    def test_collected_sample_keeps_identifier(self, coordinates_raw):
        merged = _merge([{'sample_collected': 'TRUE', 'hakai_id': '123'}], [{}], coordinates_raw)
        assert merged['hakai_id'].iloc[0] == '00123'
        assert merged['sample_collected'].iloc[0]

    def test_no_sample_is_na(self, coordinates_raw):
        merged = _merge([{'sample_collected': 'FALSE', 'hakai_id': '123'}], [{}], coordinates_raw)
        assert merged['hakai_id'].iloc[0] == 'NA'

    def test_habitat_identifier_never_used(self, coordinates_raw):
        merged = _merge([{'transect_dist': '25'}], [{'hakai_id': '999'}], coordinates_raw)
        habitat_only = merged[merged['_merge_source'] == 'habitat_only'].iloc[0]
        assert habitat_only['hakai_id'] == 'NA'
        assert not habitat_only['sample_collected']


class TestCoordinates:

    def test_coordinates_attached(self, coordinates_raw):
        merged = _merge([{}], [{}], coordinates_raw)
        assert merged['lat'].iloc[0] == pytest.approx(51.6449)
        assert merged['long'].iloc[0] == pytest.approx(-128.1201)

    def test_unknown_site_is_null_with_warning(self, coordinates_raw, reporter):
        merged = _merge([{'site_id': 'S9'}], [{'site_id': 'S9'}], coordinates_raw, reporter=reporter)
        assert len(merged) == 1
        assert pd.isna(merged['lat'].iloc[0])
        assert any('S9' in w for w in reporter.warnings)
