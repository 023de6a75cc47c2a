"""Tests for departure obstacle clearance."""

import pytest

from perfcalc.performance.obstacles import (
    DEFAULT_SCREEN_HEIGHT_M,
    Obstacle,
    evaluate_obstacles,
    required_gradient_pct,
)


class TestRequiredGradient:
    """Tests for the per-obstacle gradient."""

    def test_includes_screen_height(self) -> None:
        """Test that the 35 ft screen is added to the obstacle height."""
        obstacle = Obstacle(height_m=50.0, distance_m=1000.0, bearing_deg=90.0)
        assert required_gradient_pct(obstacle) == pytest.approx(6.07)

    def test_distance_floor(self) -> None:
        """Test that a zero distance does not divide by zero."""
        obstacle = Obstacle(height_m=0.0, distance_m=0.0, bearing_deg=0.0)
        assert required_gradient_pct(obstacle) == pytest.approx(DEFAULT_SCREEN_HEIGHT_M * 100.0)


class TestEvaluateObstacles:
    """Tests for evaluate_obstacles."""

    def test_insufficient_gradient(self) -> None:
        """Test an obstacle that the climb gradient does not clear."""
        tower = Obstacle(50.0, 1000.0, 90.0, name="tower")
        result = evaluate_obstacles(90.0, [tower], 2.6)

        assert not result.meets_obstacle_clearance
        assert result.limiting_obstacle == tower
        assert result.required_gradient_pct == pytest.approx(6.07)
        assert result.margin_pct == pytest.approx(-3.47)

    def test_limiting_obstacle_is_steepest(self) -> None:
        """Test that the steepest requirement wins."""
        near = Obstacle(20.0, 2000.0, 85.0, name="near")
        far = Obstacle(100.0, 5000.0, 95.0, name="far")
        result = evaluate_obstacles(90.0, [near, far], 3.0)

        assert result.limiting_obstacle == far
        assert result.required_gradient_pct == pytest.approx(2.214)
        assert result.meets_obstacle_clearance

    def test_obstacles_outside_cone_ignored(self) -> None:
        """Test that only obstacles within 30 degrees of the heading count."""
        off_axis = Obstacle(300.0, 1000.0, 180.0)
        result = evaluate_obstacles(90.0, [off_axis], 2.0)

        assert result.limiting_obstacle is None
        assert result.required_gradient_pct == 0.0
        assert result.margin_pct == pytest.approx(2.0)
        assert result.meets_obstacle_clearance

    def test_cone_wraps_through_north(self) -> None:
        """Test bearings either side of 360."""
        obstacle = Obstacle(50.0, 1000.0, 10.0)
        result = evaluate_obstacles(350.0, [obstacle], 8.0)

        assert result.limiting_obstacle == obstacle

    def test_zero_margin_meets_clearance(self) -> None:
        """Test that an exactly matching gradient is sufficient."""
        obstacle = Obstacle(100.0, 2000.0, 0.0)
        result = evaluate_obstacles(0.0, [obstacle], 5.0, screen_height_m=0.0)

        assert result.margin_pct == 0.0
        assert result.meets_obstacle_clearance
