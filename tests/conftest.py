"""Shared pytest fixtures."""

import pytest

from seagrass2obis.html_reporter import HTMLReporter
from tests.survey_factory import FAKE_WORMS_RECORD, make_coordinates


@pytest.fixture
def worms_record():
    return dict(FAKE_WORMS_RECORD)


@pytest.fixture
def reporter(tmp_path):
    return HTMLReporter(str(tmp_path / "report.html"))


@pytest.fixture
def coordinates_raw():
    return make_coordinates(('S1', '51.6449', '-128.1201'), ('S2', '51.6765', '-128.1143'))
