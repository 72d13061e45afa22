"""Tests for the speed/heading smoothing filters and the heading helpers."""

import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from utils.geo import normalize_heading, calculate_heading, angle_difference
from utils.smoothing import moving_average, circular_moving_average, circular_mean
from utils.units import speeds_to_kmh

# m/s samples whose 3-sample km/h windows at 16 and 18 are [9, 18, 9]
MIXED_SPEEDS = [2.5, 10 / 3, 3.5, 5.0, 5.0, 2.5, 20.0, 5.0, 10 / 3, 2.5,
                4.0, 3.0, 3.0, 20.0, 4.0, 2.5, 5.0, 2.5, 5.0, 2.5]


class TestMovingAverage:

    def test_window_of_one_leaves_values_unchanged(self):
        assert moving_average([1.0, 5.0, 2.0], 1) == [1.0, 5.0, 2.0]

    def test_non_positive_window_leaves_values_unchanged(self):
        assert moving_average([1.0, 5.0, 2.0], 0) == [1.0, 5.0, 2.0]

    def test_window_shrinks_at_the_edges(self):
        smoothed = moving_average([1, 2, 3, 4, 5], 3)
        assert smoothed == pytest.approx([1.5, 2.0, 3.0, 4.0, 4.5])

    def test_even_window_covers_half_window_on_each_side(self):
        smoothed = moving_average([1, 2, 3, 4, 5], 4)
        assert smoothed == pytest.approx([2.0, 2.5, 3.0, 3.5, 4.0])

    def test_output_has_input_length(self):
        assert len(moving_average(list(range(17)), 5)) == 17

    def test_empty_input(self):
        assert moving_average([], 3) == []

    def test_window_mean_is_independent_of_earlier_samples(self):
        smoothed = moving_average(speeds_to_kmh(MIXED_SPEEDS), 3)
        assert smoothed[16] == 12.0
        assert smoothed[18] == 12.0

    def test_same_window_gives_same_mean_anywhere_in_series(self):
        values = [1e9, 0.1, 0.2, 0.3] * 5
        smoothed = moving_average(values, 3)
        assert smoothed[2] == smoothed[18]


class TestCircularSmoothing:

    def test_values_near_north_stay_near_north(self):
        smoothed = circular_moving_average([359.0, 1.0, 359.0, 1.0], 3)
        for heading in smoothed:
            assert angle_difference(heading, 0.0) < 1.0

    def test_results_are_normalized(self):
        smoothed = circular_moving_average([350.0, 355.0, 5.0, 10.0, 270.0], 3)
        assert all(0.0 <= h < 360.0 for h in smoothed)

    def test_window_of_one_leaves_headings_unchanged(self):
        assert circular_moving_average([10.0, 200.0], 1) == [10.0, 200.0]

    def test_constant_heading_is_preserved(self):
        smoothed = circular_moving_average([90.0] * 6, 5)
        assert smoothed == pytest.approx([90.0] * 6)

    def test_circular_mean_across_north(self):
        assert angle_difference(circular_mean([350.0, 10.0]), 0.0) < 1e-9

    def test_circular_mean_single_heading(self):
        assert circular_mean([123.0]) == pytest.approx(123.0)


class TestHeadings:

    @pytest.mark.parametrize("lat2, lon2, expected", [
        (1.0, 0.0, 0.0),
        (0.0, 1.0, 90.0),
        (-1.0, 0.0, 180.0),
        (0.0, -1.0, 270.0),
    ])
    def test_cardinal_directions(self, lat2, lon2, expected):
        assert calculate_heading(0.0, 0.0, lat2, lon2) == pytest.approx(expected)

    def test_coincident_points_give_zero(self):
        assert calculate_heading(45.0, 7.0, 45.0, 7.0) == 0.0

    def test_heading_is_in_range(self):
        heading = calculate_heading(52.1, 4.2, 52.0, 4.1)
        assert 0.0 <= heading < 360.0
        assert 180.0 < heading < 270.0

    def test_angle_difference_takes_the_short_way_round(self):
        assert angle_difference(350.0, 10.0) == pytest.approx(20.0)
        assert angle_difference(10.0, 350.0) == pytest.approx(20.0)

    def test_angle_difference_bounds(self):
        assert angle_difference(90.0, 90.0) == 0.0
        assert angle_difference(0.0, 180.0) == 180.0

    def test_normalize_heading(self):
        assert normalize_heading(-90.0) == 270.0
        assert normalize_heading(360.0) == 0.0
        assert normalize_heading(45.0) == 45.0
