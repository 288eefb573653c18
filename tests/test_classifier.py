"""
Classifier Tests
================

Status tiers, density score and reading construction.
"""

from fractions import Fraction

import pytest

from crowd_monitor.classification import CrowdClassifier, classify_status, compute_density
from crowd_monitor.clustering import ClusterAssignment
from crowd_monitor.models import CrowdStatus, Signal, Zone


class TestClassifyStatus:
    """Tests for crowd status tiers."""

    @pytest.mark.parametrize(
        "population,capacity,expected",
        [
            (0, 100, CrowdStatus.NORMAL),
            (60, 100, CrowdStatus.NORMAL),
            (61, 100, CrowdStatus.MODERATE),
            (85, 100, CrowdStatus.MODERATE),
            (86, 100, CrowdStatus.OVERCROWDED),
            (3, 5, CrowdStatus.NORMAL),        # exactly 60%
            (17, 20, CrowdStatus.MODERATE),    # exactly 85%
            (4998, 5880, CrowdStatus.MODERATE),  # exactly 85%
            (4999, 5880, CrowdStatus.OVERCROWDED),
            (300, 200, CrowdStatus.OVERCROWDED),
        ],
    )
    def test_tiers(self, population, capacity, expected):
        assert classify_status(population, capacity) == expected

    def test_matches_ratio_definition(self):
        """overcrowded iff p/c > 0.85, moderate iff 0.60 < p/c <= 0.85."""
        for capacity in (1, 7, 20, 150, 250, 5880):
            for population in range(0, capacity * 2 + 1, max(1, capacity // 50)):
                ratio = Fraction(population, capacity)
                if ratio > Fraction(85, 100):
                    expected = CrowdStatus.OVERCROWDED
                elif ratio > Fraction(60, 100):
                    expected = CrowdStatus.MODERATE
                else:
                    expected = CrowdStatus.NORMAL
                assert classify_status(population, capacity) == expected, (population, capacity)

    def test_custom_thresholds(self):
        assert classify_status(50, 100, overcrowded_percent=70, moderate_percent=40) == CrowdStatus.MODERATE
        assert classify_status(71, 100, overcrowded_percent=70, moderate_percent=40) == CrowdStatus.OVERCROWDED


class TestComputeDensity:
    """Tests for the density score."""

    def test_reference_value(self):
        assert compute_density(4625, 5880) == 94

    @pytest.mark.parametrize(
        "population,capacity,expected",
        [(0, 150, 0), (150, 150, 120), (75, 150, 60), (1, 3, 40), (2, 3, 80), (299, 300, 119)],
    )
    def test_floor(self, population, capacity, expected):
        assert compute_density(population, capacity) == expected


class TestCrowdClassifier:
    """Tests for reading construction."""

    def test_classify_builds_reading(self):
        classifier = CrowdClassifier()
        zone = Zone("AB1", "AB1", 5880)
        signal = Signal(zone_id="AB1", population=4625, coordinate=(1.0, 2.0))

        reading = classifier.classify(signal, zone, cluster=2, timestamp=123.0)

        assert reading.zone_id == "AB1"
        assert reading.zone_name == "AB1"
        assert reading.population == 4625
        assert reading.capacity == 5880
        assert reading.density == 94
        assert reading.cluster == 2
        assert reading.status == CrowdStatus.MODERATE
        assert reading.timestamp == 123.0
        assert reading.occupancy_percentage == 78.66

    def test_classify_tick_maps_noise_to_zero(self):
        classifier = CrowdClassifier()
        zones = [Zone("A", "A", 100), Zone("B", "B", 100)]
        signals = [
            Signal(zone_id="A", population=90, coordinate=(0.0, 0.0)),
            Signal(zone_id="B", population=10, coordinate=(50.0, 50.0)),
        ]
        assignment = ClusterAssignment(labels=(1, None), cluster_count=1)

        readings = classifier.classify_tick(signals, zones, assignment, timestamp=5.0)

        assert [r.cluster for r in readings] == [1, 0]
        assert readings[0].is_overcrowded
        assert readings[1].is_noise
        assert {r.timestamp for r in readings} == {5.0}

    def test_classify_tick_rejects_misaligned_input(self):
        classifier = CrowdClassifier()
        zones = [Zone("A", "A", 100)]
        assignment = ClusterAssignment(labels=(None, None), cluster_count=0)
        with pytest.raises(ValueError):
            classifier.classify_tick([], zones, assignment, timestamp=0.0)

    def test_rejects_inverted_thresholds(self):
        with pytest.raises(ValueError):
            CrowdClassifier(overcrowded_percent=50, moderate_percent=60)
