"""
Darwin Core Archive descriptor (meta.xml) for the three output tables.

The Event table is the archive core. Occurrence and eMoF are extensions that
point back at it through their eventID column.
"""

import csv
import logging
import os
from xml.dom import minidom
from xml.etree.ElementTree import Element, SubElement, tostring

logger = logging.getLogger(__name__)

DWC_TEXT_NS = "http://rs.tdwg.org/dwc/text/"
DWC_TERMS_NS = "http://rs.tdwg.org/dwc/terms/"
OBIS_TERMS_NS = "http://rs.iobis.org/obis/terms/"

CORE_ROW_TYPE = DWC_TERMS_NS + "Event"
EXTENSION_ROW_TYPES = {
    'occurrence': DWC_TERMS_NS + "Occurrence",
    'emof': OBIS_TERMS_NS + "ExtendedMeasurementOrFact",
}

LINK_COLUMN = 'eventID'

# Registry bookkeeping columns with no Darwin Core term; listed in the file but not described
UNDESCRIBED_COLUMNS = {
    'AphiaID', 'url', 'authority', 'status', 'unacceptreason', 'taxonRankID', 'rank',
    'valid_AphiaID', 'valid_name', 'valid_authority', 'citation', 'lsid', 'isMarine',
    'match_type', 'modified',
}


def read_header(csv_path):
    """Column names of a written output table."""
    if not os.path.exists(csv_path):
        raise FileNotFoundError(f"Archive file not found: {csv_path}")
    with open(csv_path, "r", encoding="utf-8", newline="") as f:
        header = next(csv.reader(f), [])
    if LINK_COLUMN not in header:
        raise ValueError(f"{csv_path} has no '{LINK_COLUMN}' column to link the archive on")
    return header


def _describe_table(archive, tag, row_type, filename, header, key_tag):
    table = SubElement(archive, tag, {
        "encoding": "UTF-8",
        "fieldsTerminatedBy": ",",
        "linesTerminatedBy": "\\n",
        "fieldsEnclosedBy": '"',
        "ignoreHeaderLines": "1",
        "rowType": row_type,
    })
    SubElement(SubElement(table, "files"), "location").text = filename
    SubElement(table, key_tag, {"index": str(header.index(LINK_COLUMN))})

    described = 0
    for index, column in enumerate(header):
        if column in UNDESCRIBED_COLUMNS:
            continue
        SubElement(table, "field", {"index": str(index), "term": DWC_TERMS_NS + column})
        described += 1
    return described


def create_meta_xml(output_dir, core_filename, extension_filenames=None, reporter=None):
    """
    Write output_dir/meta.xml describing the Event core and its extensions.

    extension_filenames maps an extension role ('occurrence' or 'emof') to the
    name of its file in output_dir.
    """
    extension_filenames = extension_filenames or {}
    unknown = sorted(set(extension_filenames) - set(EXTENSION_ROW_TYPES))
    if unknown:
        raise ValueError(f"Unknown archive extension(s): {unknown}")

    archive = Element("archive", {
        "xmlns": DWC_TEXT_NS,
        "xmlns:xsi": "http://www.w3.org/2001/XMLSchema-instance",
        "xsi:schemaLocation": f"{DWC_TEXT_NS} {DWC_TEXT_NS}tdwg_dwc_text.xsd",
    })

    core_header = read_header(os.path.join(output_dir, core_filename))
    _describe_table(archive, "core", CORE_ROW_TYPE, core_filename, core_header, "id")

    for role, filename in extension_filenames.items():
        header = read_header(os.path.join(output_dir, filename))
        n_fields = _describe_table(archive, "extension", EXTENSION_ROW_TYPES[role], filename, header, "coreid")
        logger.info(f"meta.xml: {role} extension {filename} with {n_fields} described field(s)")

    out_path = os.path.join(output_dir, "meta.xml")
    pretty = minidom.parseString(tostring(archive, encoding="utf-8")).toprettyxml(indent="    ", encoding="utf-8")
    with open(out_path, "wb") as f:
        f.write(pretty)

    if reporter:
        reporter.add_text(f"Created Darwin Core Archive descriptor: {out_path}")
    return out_path
