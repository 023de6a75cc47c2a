"""Straight-out departure obstacle clearance."""

from collections.abc import Iterable
from dataclasses import dataclass

from perfcalc.core.logging_system import get_logger
from perfcalc.performance.units import angular_difference_deg

logger = get_logger(__name__)

# 35 ft screen height
DEFAULT_SCREEN_HEIGHT_M = 10.7
DEPARTURE_CONE_DEG = 30.0


@dataclass(frozen=True)
class Obstacle:
    """A charted obstacle relative to the runway threshold.

    Attributes:
        height_m: Height above runway elevation (m)
        distance_m: Distance from the threshold (m)
        bearing_deg: Bearing from the threshold (degrees)
        name: Optional identifier for reports
    """

    height_m: float
    distance_m: float
    bearing_deg: float
    name: str = ""


@dataclass(frozen=True)
class ObstacleResult:
    """Outcome of an obstacle evaluation.

    Attributes:
        meets_obstacle_clearance: True when margin >= 0
        limiting_obstacle: Obstacle demanding the steepest gradient, if any qualified
        required_gradient_pct: Worst required gradient (%)
        margin_pct: Net OEI gradient minus the worst required gradient (%)
    """

    meets_obstacle_clearance: bool
    limiting_obstacle: Obstacle | None
    required_gradient_pct: float
    margin_pct: float


def required_gradient_pct(
    obstacle: Obstacle, screen_height_m: float = DEFAULT_SCREEN_HEIGHT_M
) -> float:
    """Gradient needed to pass the obstacle at screen height (%)."""
    return (obstacle.height_m + screen_height_m) / max(obstacle.distance_m, 1.0) * 100.0


def evaluate_obstacles(
    runway_heading_deg: float,
    obstacles: Iterable[Obstacle],
    net_oei_gradient_pct: float,
    screen_height_m: float = DEFAULT_SCREEN_HEIGHT_M,
    cone_deg: float = DEPARTURE_CONE_DEG,
) -> ObstacleResult:
    """Check the net one-engine-inoperative climb gradient against obstacles.

    Only obstacles whose bearing lies within cone_deg of the runway heading
    are considered.

    Args:
        runway_heading_deg: Runway heading (degrees)
        obstacles: Charted obstacles
        net_oei_gradient_pct: Net OEI climb gradient (%)
        screen_height_m: Screen height added to every obstacle (m)
        cone_deg: Half-width of the departure cone (degrees)

    Returns:
        ObstacleResult with the limiting obstacle and the margin.

    Examples:
        >>> result = evaluate_obstacles(90.0, [Obstacle(50.0, 1000.0, 90.0)], 2.6)
        >>> round(result.required_gradient_pct, 2), round(result.margin_pct, 2)
        (6.07, -3.47)
    """
    worst = 0.0
    limiting = None
    for obstacle in obstacles:
        if angular_difference_deg(runway_heading_deg, obstacle.bearing_deg) > cone_deg:
            continue
        required = required_gradient_pct(obstacle, screen_height_m)
        if required > worst:
            worst = required
            limiting = obstacle

    margin = net_oei_gradient_pct - worst
    if margin < 0:
        logger.info(
            "Obstacle clearance not met: required %.2f%%, available %.2f%%",
            worst,
            net_oei_gradient_pct,
        )
    return ObstacleResult(
        meets_obstacle_clearance=margin >= 0,
        limiting_obstacle=limiting,
        required_gradient_pct=worst,
        margin_pct=margin,
    )
