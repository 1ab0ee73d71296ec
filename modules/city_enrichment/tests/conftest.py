"""Shared fixtures for city enrichment tests."""

import pytest

from enrichment_fixtures import RECIFE_ATTRIBUTES, kml_document, placemark_xml, square_ring


@pytest.fixture
def recife_kml(tmp_path):
    """KML file with a square Recife boundary around (-34.88, -8.05)."""
    path = tmp_path / "recife.kml"
    path.write_bytes(kml_document([
        placemark_xml("Recife", RECIFE_ATTRIBUTES, [square_ring(-34.88, -8.05, 0.1)]),
    ]))
    return path
