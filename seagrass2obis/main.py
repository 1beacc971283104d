#!/usr/bin/env python3
"""
seagrass2obis Main Script
Converts Hakai seagrass density and habitat surveys to Darwin Core Event,
Occurrence and extendedMeasurementOrFact tables for OBIS submission
"""

import argparse
import logging
import os
import sys
import traceback

import pandas as pd
import yaml

from seagrass2obis.cli_output.cli_ui import console, print_header, print_output_summary, print_separator
from seagrass2obis.create_eMoF.eMoF_builder import create_emof_table
from seagrass2obis.create_event_core.event_builder import create_event_core
from seagrass2obis.create_meta_xml.meta_xml_builder import create_meta_xml
from seagrass2obis.create_occurrence.occurrence_builder import create_occurrence
from seagrass2obis.exceptions import ConfigError, Seagrass2ObisError
from seagrass2obis.html_reporter import HTMLReporter
from seagrass2obis.merge_surveys.distance_buckets import map_habitat_distances
from seagrass2obis.merge_surveys.identifiers import assign_identifiers
from seagrass2obis.merge_surveys.survey_merger import merge_surveys
from seagrass2obis.normalize_records.record_normalizer import (
    normalize_coordinates,
    normalize_density,
    normalize_habitat,
)
from seagrass2obis.taxonomic_assignment.WoRMS_matching import (
    DEFAULT_APHIA_ID,
    NULLABLE_RECORD_FIELDS,
    get_worms_record_by_id,
)

logger = logging.getLogger(__name__)

REQUIRED_CONFIG_KEYS = ['density_file', 'habitat_file', 'coordinates_file']

CONFIG_DEFAULTS = {
    'output_dir': 'processed/',
    'event_filename': 'event.csv',
    'occurrence_filename': 'occurrence.csv',
    'emof_filename': 'eMoF.csv',
    'event_id_tag': 'HAKAI:CALVERT',
    'id_delimiter': ':',
    'identifier_pad_width': 5,
    'numeric_parse_policy': 'warn',
    'unmapped_distance_policy': 'warn',
    'taxon_aphia_id': DEFAULT_APHIA_ID,
    'scientific_name': 'Zostera marina',
    'basis_of_record': 'HumanObservation',
    'geodetic_datum': 'WGS84',
    'sampling_effort': '30 m transect',
    'emof_vocabulary_path': None,
    'meta_xml_enabled': False,
    'report_enabled': True,
    'report_open_browser': False,
}

_POLICY_VALUES = ('warn', 'error')


def load_config(config_path="config.yaml"):
    """Load configuration from YAML file and convert to params dict structure"""
    if not os.path.exists(config_path):
        raise ConfigError(config_path, "config file not found")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(config_path, f"invalid YAML: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(config_path, "top level must be a mapping")

    missing = [key for key in REQUIRED_CONFIG_KEYS if not config.get(key)]
    if missing:
        raise ConfigError(config_path, f"missing required key(s): {missing}")

    params = dict(CONFIG_DEFAULTS)
    params.update({key: value for key, value in config.items() if value is not None})

    for key in ('numeric_parse_policy', 'unmapped_distance_policy'):
        if params[key] not in _POLICY_VALUES:
            raise ConfigError(config_path, f"{key} must be one of {_POLICY_VALUES}, got '{params[key]}'")

    return params


def _read_text_table(path):
    # Every cell stays text; typing is the normalizer's job
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def load_survey_tables(params, reporter):
    """Load the density, habitat and coordinate tables as raw text"""
    reporter.add_section("Loading Survey Data", level=2)

    try:
        raw = {}
        for name, key in [('density', 'density_file'), ('habitat', 'habitat_file'),
                          ('coordinates', 'coordinates_file')]:
            path = params[key]
            if not os.path.exists(path):
                raise FileNotFoundError(f"{name} table not found: {path}")
            raw[name] = _read_text_table(path)
            reporter.add_text(f"Loaded {name} table: {path} (shape: {raw[name].shape})")
            logger.info(f"Loaded {len(raw[name])} rows from {path}")

        reporter.add_dataframe(raw['density'], "Density survey (first 5 rows)", max_rows=5)
        reporter.add_dataframe(raw['habitat'], "Habitat survey (first 5 rows)", max_rows=5)
        return raw

    except Exception as e:
        reporter.add_error(f"Failed to load survey data: {e}")
        raise


def prepare_observations(density_raw, habitat_raw, coordinates_raw, params, reporter):
    """Normalize, bucket-map, merge and identify: one keyed row per merged observation"""
    reporter.add_section("Normalizing Survey Records", level=2)
    try:
        density_df = normalize_density(density_raw, params, reporter)
        habitat_df = normalize_habitat(habitat_raw, params, reporter)
        coordinates_df = normalize_coordinates(coordinates_raw, params, reporter)
    except Exception as e:
        reporter.add_error(f"Failed to normalize survey records: {e}")
        raise

    reporter.add_section("Mapping Habitat Sections to Transect Points", level=2)
    try:
        bucket_result = map_habitat_distances(habitat_df, params, reporter)
    except Exception as e:
        reporter.add_error(f"Failed to map habitat distances: {e}")
        raise

    try:
        merged_df = merge_surveys(density_df, bucket_result.mapped, coordinates_df, params, reporter)
        return assign_identifiers(merged_df, params)
    except Exception as e:
        reporter.add_error(f"Failed to merge surveys: {e}")
        raise


def fetch_taxon_record(params, reporter):
    """Single WoRMS lookup for the surveyed taxon"""
    reporter.add_section("Taxonomic Assignment", level=2)
    aphia_id = params.get('taxon_aphia_id', DEFAULT_APHIA_ID)
    try:
        record = get_worms_record_by_id(aphia_id)
    except Exception as e:
        reporter.add_error(f"Taxonomic lookup failed: {e}")
        raise
    reporter.add_success(f"WoRMS AphiaID {aphia_id}: {record['scientificname']} {record['authority'] or ''} "
                         f"({record['status']})")
    return record


def build_tables(density_raw, habitat_raw, coordinates_raw, worms_record, params, reporter):
    """Raw survey frames + taxon record -> {'event', 'occurrence', 'emof'} frames.

    Pure: nothing is read or written here, so a failure leaves no partial output.
    """
    keyed_df = prepare_observations(density_raw, habitat_raw, coordinates_raw, params, reporter)

    console.print("Building Event, Occurrence and eMoF tables...")
    return {
        'event': create_event_core(keyed_df, params, reporter),
        'occurrence': create_occurrence(keyed_df, worms_record, params, reporter),
        'emof': create_emof_table(keyed_df, params, reporter),
    }


def write_tables(tables, params, reporter):
    """Write every table to a temporary file, then move them all into place"""
    reporter.add_section("Writing Output Tables", level=2)
    output_dir = params.get('output_dir', 'processed/')
    os.makedirs(output_dir, exist_ok=True)

    paths = {name: os.path.join(output_dir, params[f'{name}_filename']) for name in tables}
    staged = []
    try:
        for name, df in tables.items():
            tmp_path = paths[name] + '.tmp'
            df.to_csv(tmp_path, index=False, na_rep='', encoding='utf-8', lineterminator='\n')
            staged.append(tmp_path)
        for name in tables:
            os.replace(paths[name] + '.tmp', paths[name])
    except Exception as e:
        for tmp_path in staged:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        reporter.add_error(f"Failed to write output tables: {e}")
        raise

    for name, path in paths.items():
        reporter.add_text(f"Saved {name} table ({len(tables[name])} rows) to: {path}")
    return paths


def validate_output_files(paths, reporter):
    """Warn about output columns that are completely empty"""
    reporter.add_section("Final File Validation", level=3)
    all_empty_columns_summary = []
    for name, filepath in paths.items():
        df = pd.read_csv(filepath, dtype=str, keep_default_na=False)
        for col in df.columns:
            if not (df[col] == '').all():
                continue
            if name == 'occurrence' and col in NULLABLE_RECORD_FIELDS:
                reporter.add_text(f"Column <code>{col}</code> in <code>{os.path.basename(filepath)}</code> "
                                  f"is empty, as expected for an accepted name.")
            else:
                reporter.add_warning(f"In output file <strong>'{os.path.basename(filepath)}'</strong>, "
                                     f"the column <strong>'{col}'</strong> was found to be completely empty.")
                all_empty_columns_summary.append(f"File: <code>{os.path.basename(filepath)}</code>, Column: <code>{col}</code>")

    if not all_empty_columns_summary:
        reporter.add_success("Validation complete: No empty columns found in final output files.")
    else:
        reporter.add_list(all_empty_columns_summary, "Summary of all empty columns found:")
    return all_empty_columns_summary


def run_pipeline(params, reporter):
    """Run every step; returns the output tables and the paths they were written to"""
    raw = load_survey_tables(params, reporter)

    console.print("Looking up taxonomy in WoRMS...")
    worms_record = fetch_taxon_record(params, reporter)

    console.print("Normalizing and merging surveys...")
    tables = build_tables(raw['density'], raw['habitat'], raw['coordinates'], worms_record, params, reporter)

    paths = write_tables(tables, params, reporter)

    if params.get('meta_xml_enabled', False):
        create_meta_xml(
            params.get('output_dir', 'processed/'),
            params['event_filename'],
            {'occurrence': params['occurrence_filename'], 'emof': params['emof_filename']},
            reporter=reporter,
        )

    validate_output_files(paths, reporter)
    return tables, paths


def main(argv=None):
    """Main execution function"""
    parser = argparse.ArgumentParser(
        description="Convert Hakai seagrass density and habitat surveys to OBIS Event, Occurrence and eMoF tables."
    )
    parser.add_argument(
        '-c', '--config', default='config.yaml',
        help="Path to the YAML configuration file (default: config.yaml)"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    print_header()

    try:
        params = load_config(args.config)
    except ConfigError as e:
        console.print(f"CRITICAL ERROR: Could not load configuration file. {e}", style="bold red")
        return 1

    output_dir = params.get('output_dir', 'processed/')
    os.makedirs(output_dir, exist_ok=True)
    reporter = HTMLReporter(os.path.join(output_dir, "seagrass2obis_report.html"))

    reporter.add_section("seagrass2obis Conversion", level=1)
    reporter.add_list([
        f"Density survey: {params['density_file']}",
        f"Habitat survey: {params['habitat_file']}",
        f"Site coordinates: {params['coordinates_file']}",
        f"Taxon AphiaID: {params['taxon_aphia_id']}",
        f"Output directory: {output_dir}",
    ], "Configuration Summary:")

    exit_code = 0
    try:
        tables, paths = run_pipeline(params, reporter)

        if reporter.warnings:
            reporter.set_warning()
        else:
            reporter.set_success()

        print_separator("Process completed")
        print_output_summary(tables, paths)

    except Seagrass2ObisError as e:
        console.print(f"\nError during processing: {e}", style="bold red")
        reporter.set_failed(str(e))
        exit_code = 1

    except Exception as e:
        console.print(f"\nUnexpected error during processing: {e}", style="bold red")
        reporter.add_error(f"Pipeline failed: {e}")
        reporter.add_text("Full traceback:")
        reporter.add_code(traceback.format_exc())
        exit_code = 1

    finally:
        if params.get('report_enabled', True):
            if params.get('report_open_browser', False):
                reporter.save_and_open()
            else:
                reporter.save()
            console.print(f"HTML report saved: {reporter.filename}", style="dim")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
