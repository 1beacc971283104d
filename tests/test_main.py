"""
Tests for configuration loading and the end-to-end conversion.

Run with: pytest tests/test_main.py -v
"""

from pathlib import Path
from unittest.mock import patch

import pandas as pd
import pytest
import yaml

from seagrass2obis.exceptions import ConfigError
from seagrass2obis.main import build_tables, load_config, main, validate_output_files
from tests.survey_factory import make_coordinates, make_density, make_habitat

LOOKUP = 'seagrass2obis.taxonomic_assignment.WoRMS_matching.pyworms.aphiaRecordByAphiaID'
SAMPLE_DIR = Path(__file__).resolve().parent.parent / 'raw'


def _write_config(tmp_path, **overrides):
    config = {
        'density_file': str(tmp_path / 'density.csv'),
        'habitat_file': str(tmp_path / 'habitat.csv'),
        'coordinates_file': str(tmp_path / 'coordinates.csv'),
        'output_dir': str(tmp_path / 'processed'),
        **overrides,
    }
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.safe_dump(config), encoding='utf-8')
    return str(path)


def _write_surveys(tmp_path):
    make_density({'transect_dist': '0'}, {'transect_dist': '5'}, {}).to_csv(tmp_path / 'density.csv', index=False)
    make_habitat({'transect_dist': '0 - 5'}, {}).to_csv(tmp_path / 'habitat.csv', index=False)
    make_coordinates(('S1', '51.6449', '-128.1201')).to_csv(tmp_path / 'coordinates.csv', index=False)


class TestLoadConfig:

    def test_defaults_filled(self, tmp_path):
        params = load_config(_write_config(tmp_path))
        assert params['event_filename'] == 'event.csv'
        assert params['emof_filename'] == 'eMoF.csv'
        assert params['taxon_aphia_id'] == 145795
        assert params['id_delimiter'] == ':'
        assert params['meta_xml_enabled'] is False

    def test_overrides(self, tmp_path):
        params = load_config(_write_config(tmp_path, event_id_tag='HAKAI:QUADRA', numeric_parse_policy='error'))
        assert params['event_id_tag'] == 'HAKAI:QUADRA'
        assert params['numeric_parse_policy'] == 'error'

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(tmp_path / 'absent.yaml'))

    def test_missing_required_key(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("density_file: d.csv\nhabitat_file: h.csv\n", encoding='utf-8')
        with pytest.raises(ConfigError, match="coordinates_file"):
            load_config(str(path))

    def test_bad_policy(self, tmp_path):
        with pytest.raises(ConfigError, match="unmapped_distance_policy"):
            load_config(_write_config(tmp_path, unmapped_distance_policy='ignore'))

    def test_repository_config_loads(self):
        params = load_config(str(SAMPLE_DIR.parent / 'config.yaml'))
        assert params['density_file'].startswith('raw/')


class TestBuildTables:

    def test_example_values(self, coordinates_raw, reporter, worms_record):
        tables = build_tables(make_density({}), make_habitat({}), coordinates_raw, worms_record, {}, reporter)
        assert set(tables) == {'event', 'occurrence', 'emof'}
        assert tables['event']['eventID'].tolist() == ['2020-07-01:HAKAI:CALVERT:S1:10']
        assert tables['occurrence']['occurrenceID'].tolist() == ['2020-07-01:HAKAI:CALVERT:S1:10:10:NA']
        assert tables['event']['minimumDepthInMeters'].iloc[0] == pytest.approx(3.2)
        bed = tables['emof'][tables['emof']['measurementType'] == 'BedAbund'].iloc[0]
        assert bed['measurementValue'] == '45'
        assert bed['measurementUnit'] == 'Number per square metre'

    def test_mixed_utc_offsets_convert(self, coordinates_raw, reporter, worms_record):
        density = make_density(
            {'collected_start': '2020-07-01T10:00:00-07:00'},
            {'transect_dist': '5', 'collected_start': '2020-11-03T10:00:00-08:00'},
        )
        tables = build_tables(density, make_habitat({}), coordinates_raw, worms_record, {}, reporter)
        assert len(tables['event']) == 2

    def test_same_input_same_tables(self, coordinates_raw, reporter, worms_record):
        density, habitat = make_density({}, {'transect_dist': '0'}), make_habitat({}, {'transect_dist': '0 - 5'})
        density_before = density.copy()
        first = build_tables(density, habitat, coordinates_raw, worms_record, {}, reporter)
        second = build_tables(density, habitat, coordinates_raw, worms_record, {}, reporter)
        for name in first:
            pd.testing.assert_frame_equal(first[name], second[name])
        pd.testing.assert_frame_equal(density, density_before)


class TestValidateOutputFiles:

    def test_blank_unacceptreason_is_expected(self, tmp_path, reporter):
        path = tmp_path / 'occurrence.csv'
        path.write_text("occurrenceID,unacceptreason,recordedBy\nO1,,\nO2,,\n", encoding='utf-8')
        empty = validate_output_files({'occurrence': str(path)}, reporter)
        assert len(empty) == 1
        assert 'recordedBy' in empty[0]
        assert not any('unacceptreason' in w for w in reporter.warnings)

    def test_accepted_taxon_run_succeeds(self, tmp_path, reporter, worms_record):
        tables = build_tables(make_density({}), make_habitat({}), make_coordinates(('S1', '51.6', '-128.1')),
                              worms_record, {}, reporter)
        path = tmp_path / 'occurrence.csv'
        tables['occurrence'].to_csv(path, index=False, na_rep='')
        assert validate_output_files({'occurrence': str(path)}, reporter) == []


class TestMain:

    def test_end_to_end_is_idempotent(self, tmp_path, worms_record):
        _write_surveys(tmp_path)
        config_path = _write_config(tmp_path)
        out_dir = tmp_path / 'processed'
        names = ['event.csv', 'occurrence.csv', 'eMoF.csv']

        with patch(LOOKUP, return_value=worms_record):
            assert main(['-c', config_path]) == 0
        first = {name: (out_dir / name).read_bytes() for name in names}

        with patch(LOOKUP, return_value=worms_record):
            assert main(['-c', config_path]) == 0
        second = {name: (out_dir / name).read_bytes() for name in names}

        assert first == second
        assert (out_dir / 'seagrass2obis_report.html').exists()
        assert not list(out_dir.glob('*.tmp'))

    def test_output_files(self, tmp_path, worms_record):
        _write_surveys(tmp_path)
        config_path = _write_config(tmp_path)
        with patch(LOOKUP, return_value=worms_record):
            assert main(['-c', config_path]) == 0

        out_dir = tmp_path / 'processed'
        event = pd.read_csv(out_dir / 'event.csv', dtype=str, keep_default_na=False)
        occurrence = pd.read_csv(out_dir / 'occurrence.csv', dtype=str, keep_default_na=False)
        emof = pd.read_csv(out_dir / 'eMoF.csv', dtype=str, keep_default_na=False)

        assert event['eventID'].tolist() == [
            '2020-07-01:HAKAI:CALVERT:S1:0',
            '2020-07-01:HAKAI:CALVERT:S1:10',
            '2020-07-01:HAKAI:CALVERT:S1:5',
        ]
        assert len(occurrence) == 3
        assert len(emof) == 9 * 3
        assert b'\r\n' not in (out_dir / 'eMoF.csv').read_bytes()
        # Null is written as an empty field
        assert (emof.loc[emof['measurementType'] == 'AdjacentHabitat2', 'measurementValue'] == '').all()

    def test_taxonomy_failure_writes_no_tables(self, tmp_path):
        _write_surveys(tmp_path)
        config_path = _write_config(tmp_path)
        with patch(LOOKUP, side_effect=ConnectionError("offline")):
            assert main(['-c', config_path]) == 1

        out_dir = tmp_path / 'processed'
        assert not (out_dir / 'event.csv').exists()
        assert not (out_dir / 'occurrence.csv').exists()
        assert not (out_dir / 'eMoF.csv').exists()
        report = (out_dir / 'seagrass2obis_report.html').read_text(encoding='utf-8')
        assert 'FAILED' in report

    def test_bad_date_exits_nonzero(self, tmp_path, worms_record):
        _write_surveys(tmp_path)
        make_density({'date': 'July 1'}).to_csv(tmp_path / 'density.csv', index=False)
        config_path = _write_config(tmp_path)
        with patch(LOOKUP, return_value=worms_record):
            assert main(['-c', config_path]) == 1
        assert not (tmp_path / 'processed' / 'event.csv').exists()

    def test_missing_config_exits_nonzero(self, tmp_path):
        assert main(['-c', str(tmp_path / 'absent.yaml')]) == 1

    def test_meta_xml(self, tmp_path, worms_record):
        _write_surveys(tmp_path)
        config_path = _write_config(tmp_path, meta_xml_enabled=True)
        with patch(LOOKUP, return_value=worms_record):
            assert main(['-c', config_path]) == 0
        meta = (tmp_path / 'processed' / 'meta.xml').read_text(encoding='utf-8')
        assert 'eMoF.csv' in meta
        assert 'ExtendedMeasurementOrFact' in meta

    def test_sample_data(self, tmp_path, worms_record):
        config_path = _write_config(
            tmp_path,
            density_file=str(SAMPLE_DIR / 'seagrass_density_survey.csv'),
            habitat_file=str(SAMPLE_DIR / 'seagrass_habitat_survey.csv'),
            coordinates_file=str(SAMPLE_DIR / 'coordinates.csv'),
        )
        with patch(LOOKUP, return_value=worms_record):
            assert main(['-c', config_path]) == 0

        out_dir = tmp_path / 'processed'
        event = pd.read_csv(out_dir / 'event.csv', dtype=str, keep_default_na=False)
        emof = pd.read_csv(out_dir / 'eMoF.csv', dtype=str, keep_default_na=False)
        assert len(event) == 6
        assert len(emof) == 9 * 6
        pruth_15 = event[event['eventID'] == '2020-07-01:HAKAI:CALVERT:PRUTH_BAY:15'].iloc[0]
        # Density depth is blank there, so the habitat reading is used
        assert pruth_15['minimumDepthInMeters'] == '3.6'
