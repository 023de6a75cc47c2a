"""Pytest configuration and fixtures for all tests."""

import copy
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from perfcalc.core.logging_system import initialize_logging

PROJECT_ROOT = Path(__file__).resolve().parents[1]

_log_config_path: Path | None = None

SEED_PACK: dict[str, Any] = {
    "metadata": {"data_version": "TEST-1.0"},
    "aircraft": {
        "B1900D": {
            "limits": {
                "max_takeoff_weight_kg": 7550,
                "max_landing_weight_kg": 7200,
                "min_operating_weight_kg": 4500,
                "min_pressure_altitude_m": -300,
                "max_pressure_altitude_m": 3000,
                "min_temperature_c": -40,
                "max_temperature_c": 50,
                "max_wind_kt": 50,
                "max_tailwind_kt": 10,
                "max_slope_pct": 2,
            },
            "v_speeds": [
                {"flap": 0, "weight_kg": 6000, "v1_kt": 95, "vr_kt": 100, "v2_kt": 105, "vref_kt": 110},
                {"flap": 0, "weight_kg": 7000, "v1_kt": 100, "vr_kt": 105, "v2_kt": 110, "vref_kt": 115},
            ],
            "takeoff": [
                {
                    "flap": 0,
                    "bleeds_on": True,
                    "anti_ice_on": False,
                    "rows": [
                        {"weight_kg": w, "pa_m": pa, "oat_c": oat, "todr_m": todr + dw,
                         "asdr_m": todr + 100 + dw, "bfl_m": todr + 50 + dw,
                         "oei_net_climb_pct": round(climb - dw / 1000, 3)}
                        for w, dw in ((6000, 0), (7000, 100))
                        for pa, oat, todr, climb in (
                            (0, 0, 900, 2.5),
                            (0, 20, 950, 2.4),
                            (1000, 0, 1000, 2.3),
                            (1000, 20, 1050, 2.2),
                        )
                    ],
                }
            ],
            "landing": [
                {
                    "flap": 0,
                    "anti_ice_on": False,
                    "rows": [
                        {"weight_kg": w, "pa_m": pa, "oat_c": oat, "ldr_m": ldr + dw}
                        for w, dw in ((6000, 0), (7000, 100))
                        for pa, oat, ldr in ((0, 0, 800), (0, 20, 840), (1000, 0, 880), (1000, 20, 920))
                    ],
                }
            ],
            "corrections": {
                "wind_takeoff": [[-5, 0.10], [0, 0.0], [10, -0.05]],
                "slope_takeoff": [[-2, -0.04], [0, 0.0], [2, 0.06]],
                "wet_takeoff": [[0, 0.15]],
                "wind_landing": [[-5, 0.20], [0, 0.0], [10, -0.05]],
                "slope_landing": [[-2, 0.08], [0, 0.0], [2, -0.04]],
                "wet_landing": [[0, 0.20]],
            },
        }
    },
}


def pytest_configure(config: pytest.Config) -> None:
    """Send all test logging to a temporary directory instead of the user's log dir."""
    global _log_config_path

    log_dir = Path(tempfile.mkdtemp(prefix="perfcalc-test-logs-"))
    _log_config_path = log_dir / "logging.yaml"
    _log_config_path.write_text(
        yaml.safe_dump(
            {
                "log_dir": str(log_dir),
                "console": {"enabled": False},
                "combined_log": {"enabled": True, "filename": "perfcalc.log"},
            }
        ),
        encoding="utf-8",
    )
    initialize_logging(_log_config_path, use_platform_dir=False)


@pytest.fixture
def restore_logging():
    """Re-initialize test logging after a test that reconfigures it."""
    yield
    initialize_logging(_log_config_path, use_platform_dir=False)


@pytest.fixture
def pack_source() -> dict[str, Any]:
    """A fresh copy of the seed data pack description."""
    return copy.deepcopy(SEED_PACK)


@pytest.fixture
def build_pack(tmp_path: Path) -> Callable[..., Any]:
    """Factory that builds a pack file from a description and opens it."""
    from perfcalc.datapack.builder import build_data_pack
    from perfcalc.datapack.reader import DataPackReader

    counter = iter(range(1000))

    def _build(source: dict[str, Any]) -> DataPackReader:
        path = build_data_pack(source, tmp_path / f"pack_{next(counter)}.sqlite")
        return DataPackReader.open(path)

    return _build


@pytest.fixture
def pack_path(tmp_path: Path, pack_source: dict[str, Any]) -> Path:
    """Seed data pack written to disk."""
    from perfcalc.datapack.builder import build_data_pack

    return build_data_pack(pack_source, tmp_path / "seed.sqlite")


@pytest.fixture
def pack(pack_path: Path):
    """Seed data pack opened for reading."""
    from perfcalc.datapack.reader import DataPackReader

    return DataPackReader.open(pack_path)


@pytest.fixture
def sample_pack_yaml() -> Path:
    """The sample data pack description shipped with the project."""
    return PROJECT_ROOT / "data" / "packs" / "b1900d_sample.yaml"


@pytest.fixture
def golden_cases_csv() -> Path:
    """The golden cases shipped with the project."""
    return PROJECT_ROOT / "data" / "golden" / "b1900d_cases.csv"
