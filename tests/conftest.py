"""Configuration for pytest."""

import pytest

from anchor_guidance.core.engine import GuidanceEngine
from anchor_guidance.memory import InMemoryRecordStore
from anchor_guidance.schemas import (
    AnchorRecord,
    ARObjectRecord,
    ElevationHint,
    GeoPoint,
    NetworkObservation,
    WirelessFingerprint,
)

ANCHOR_LAT = 37.7749
ANCHOR_LNG = -122.4194


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that start a live HTTP server"
    )


def make_network(network_id: str, rssi: float, name: str | None = None) -> NetworkObservation:
    """Build a network observation."""
    return NetworkObservation(network_id=network_id, name=name, signal_strength_dbm=rssi)


@pytest.fixture
def anchor_point():
    """GPS position of the sample anchor."""
    return GeoPoint(latitude=ANCHOR_LAT, longitude=ANCHOR_LNG, accuracy=4.0)


@pytest.fixture
def sample_anchor(anchor_point):
    """A sample anchor in a kitchen."""
    return AnchorRecord(
        id="anchor-1",
        label="Kitchen counter",
        gps=anchor_point,
        heading=180.0,
        is_indoor=True,
    )


@pytest.fixture
def sample_object(anchor_point):
    """A sample object placed east of its anchor."""
    return ARObjectRecord(
        id="obj-1",
        anchor_id="anchor-1",
        label="Keys",
        description="Spare house keys",
        bearing_from_anchor=90.0,
        distance_from_anchor=2.0,
        elevation_hint=ElevationHint.EYE,
        capture_heading=200.0,
        capture_gps=anchor_point,
        room_label="Kitchen",
        reference_photo="photos/keys.jpg",
    )


@pytest.fixture
def sample_scan():
    """Three access points as seen at the object."""
    return [
        make_network("aa:aa:aa:aa:aa:01", -45.0, "HomeNet"),
        make_network("aa:aa:aa:aa:aa:02", -60.0, "HomeNet-5G"),
        make_network("aa:aa:aa:aa:aa:03", -72.0, "Neighbor"),
    ]


@pytest.fixture
def sample_fingerprint(sample_scan):
    """Fingerprint of the sample object."""
    return WirelessFingerprint(
        object_id="obj-1",
        networks=sample_scan,
        room_label="Kitchen",
    )


@pytest.fixture
def store(sample_anchor, sample_object):
    """In-memory store holding the sample anchor and object."""
    store = InMemoryRecordStore()
    store.put_anchor(sample_anchor)
    store.put_object(sample_object)
    return store


@pytest.fixture
def engine(store):
    """Guidance engine over the sample store."""
    return GuidanceEngine(store)
