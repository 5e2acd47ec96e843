"""
Tests for progress arithmetic helpers.

System role: Verification of percent and ETA derivation
"""

import pytest

from customer_sync.core.progress import clamp_percent, estimate_eta_seconds, percent_of


class TestPercentOf:
    def test_percent_is_share_of_total(self) -> None:
        assert percent_of(25, 100) == 25.0

    def test_zero_total_counts_as_done(self) -> None:
        assert percent_of(0, 0) == 100.0

    def test_percent_never_exceeds_hundred(self) -> None:
        assert percent_of(130, 100) == 100.0

    @pytest.mark.parametrize("value,expected", [(-5.0, 0.0), (42.5, 42.5), (150.0, 100.0)])
    def test_clamp_percent(self, value: float, expected: float) -> None:
        assert clamp_percent(value) == expected


class TestEstimateEta:
    def test_no_estimate_before_first_record(self) -> None:
        assert estimate_eta_seconds(total=100, processed=0, elapsed_seconds=12.0) is None

    def test_extrapolates_average_time_per_record(self) -> None:
        # 10 records in 20s -> 2s per record, 90 remaining
        assert estimate_eta_seconds(total=100, processed=10, elapsed_seconds=20.0) == 180

    def test_rounds_up_partial_seconds(self) -> None:
        assert estimate_eta_seconds(total=3, processed=2, elapsed_seconds=1.0) == 1

    def test_no_estimate_when_nothing_remains(self) -> None:
        assert estimate_eta_seconds(total=10, processed=10, elapsed_seconds=5.0) is None
