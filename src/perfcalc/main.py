"""PerfCalc command line interface.

Typical usage:
    perfcalc build-pack data/packs/b1900d_sample.yaml build/b1900d.sqlite
    perfcalc info build/b1900d.sqlite
    perfcalc takeoff build/b1900d.sqlite --aircraft B1900D --weight 6500 --pa 500 --oat 10 \
        --flap 0 --runway 1800
    perfcalc landing build/b1900d.sqlite --request requests/landing.yaml --json
    perfcalc matrix build/b1900d.sqlite data/golden/b1900d_cases.csv
"""

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

import yaml

from perfcalc.core.config import ConfigError
from perfcalc.core.errors import ErrorReport, PerformanceError
from perfcalc.core.logging_system import (
    LoggingError,
    get_logger,
    initialize_logging,
    is_initialized,
)
from perfcalc.datapack.builder import build_data_pack_from_yaml
from perfcalc.datapack.reader import DataPackReader
from perfcalc.performance.calculator import PerformanceCalculator
from perfcalc.performance.company_limits import evaluate_company_limits
from perfcalc.performance.models import (
    CalculationRequest,
    EnvironmentalConditions,
    FlightConfiguration,
    PerformanceResult,
    Phase,
    SurfaceCondition,
)
from perfcalc.performance.settings import Settings, load_settings
from perfcalc.performance.validation import ValidationService
from perfcalc.performance.validation_matrix import run_matrix_file

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Arguments without the program name; sys.argv when None.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="perfcalc", description="PerfCalc - Certified takeoff and landing performance"
    )
    parser.add_argument("--config", type=Path, help="Calculator settings YAML")
    parser.add_argument("--logging-config", type=Path, help="Logging configuration YAML")

    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build-pack", help="Build a data pack from a YAML description")
    build.add_argument("source", type=Path, help="YAML data pack description")
    build.add_argument("output", type=Path, help="SQLite data pack to write")
    build.add_argument("--overwrite", action="store_true", help="Replace an existing pack")

    info = sub.add_parser("info", help="Show data pack version and content")
    info.add_argument("pack", type=Path, help="SQLite data pack")

    for phase in Phase:
        calc = sub.add_parser(phase.value, help=f"Calculate {phase.value} performance")
        calc.add_argument("pack", type=Path, help="SQLite data pack")
        calc.add_argument("--request", type=Path, help="Request YAML (overrides the options below)")
        calc.add_argument("--aircraft", type=str, help="Aircraft identifier (e.g., B1900D)")
        calc.add_argument("--weight", type=float, help="Weight (kg)")
        calc.add_argument("--pa", type=float, default=0.0, help="Pressure altitude (m)")
        calc.add_argument("--oat", type=float, default=15.0, help="Outside air temperature (C)")
        calc.add_argument("--headwind", type=float, default=0.0, help="Headwind component (m/s)")
        calc.add_argument("--crosswind", type=float, default=0.0, help="Crosswind component (m/s)")
        calc.add_argument("--slope", type=float, default=0.0, help="Runway slope (%%)")
        calc.add_argument(
            "--surface",
            choices=[s.value for s in SurfaceCondition],
            default=SurfaceCondition.DRY.value,
            help="Runway surface condition",
        )
        calc.add_argument("--flap", type=int, default=0, help="Flap setting")
        calc.add_argument("--bleeds-off", action="store_true", help="Engine bleeds off")
        calc.add_argument("--anti-ice", action="store_true", help="Anti-ice on")
        calc.add_argument("--runway", type=float, help="Runway length available (m)")
        calc.add_argument("--json", action="store_true", help="Print the result as JSON")

    matrix = sub.add_parser("matrix", help="Run golden cases from a CSV file")
    matrix.add_argument("pack", type=Path, help="SQLite data pack")
    matrix.add_argument("cases", type=Path, help="Validation matrix CSV")

    return parser.parse_args(argv)


def build_request(args: argparse.Namespace, phase: Phase) -> CalculationRequest:
    """Build a request from --request YAML or from the individual options.

    Raises:
        ValueError: If required options are missing or the YAML is invalid.
    """
    if args.request is not None:
        try:
            with args.request.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return CalculationRequest.from_dict({**data, "phase": phase.value})
        except (OSError, yaml.YAMLError, KeyError, TypeError) as e:
            raise ValueError(f"Invalid request file {args.request}: {e}") from e

    missing = [name for name in ("aircraft", "weight", "runway") if getattr(args, name) is None]
    if missing:
        raise ValueError(f"Missing options: {', '.join('--' + m for m in missing)}")

    return CalculationRequest(
        aircraft=args.aircraft,
        phase=phase,
        weight_kg=args.weight,
        conditions=EnvironmentalConditions(
            temperature_c=args.oat,
            pressure_altitude_m=args.pa,
            headwind_ms=args.headwind,
            crosswind_ms=args.crosswind,
            runway_slope_pct=args.slope,
            surface=SurfaceCondition(args.surface),
        ),
        configuration=FlightConfiguration(
            flap_setting=args.flap,
            bleeds_on=not args.bleeds_off,
            anti_ice_on=args.anti_ice,
        ),
        runway_length_m=args.runway,
    )


def format_result(result: PerformanceResult) -> str:
    """Human-readable result summary."""
    lines = [f"{result.aircraft} {result.phase.value} (data pack {result.data_pack_version})"]
    speeds = result.v_speeds
    if result.takeoff is not None:
        lines.append(
            f"  TODR {result.takeoff.todr_m:.0f} m  ASDR {result.takeoff.asdr_m:.0f} m  "
            f"BFL {result.takeoff.bfl_m:.0f} m"
        )
        lines.append(f"  V1 {speeds.v1_kt:.0f}  VR {speeds.vr_kt:.0f}  V2 {speeds.v2_kt:.0f} kt")
    if result.climb is not None:
        lines.append(f"  OEI net climb {result.climb.oei_net_climb_gradient_pct:.2f}%")
    if result.ldr_m is not None:
        lines.append(f"  LDR {result.ldr_m:.0f} m")
        lines.append(f"  VREF {speeds.vref_kt:.0f} kt")
    if result.corrections:
        lines.append(f"  Corrections: {', '.join(result.corrections)}")
    lines.append(f"  Limiting factor: {result.limiting_factor.display_name}")
    for warning in result.warnings:
        lines.append(f"  [{warning.severity.value.upper()}] {warning.message}")
    return "\n".join(lines)


def _cmd_build_pack(args: argparse.Namespace, settings: Settings) -> int:
    path = build_data_pack_from_yaml(args.source, args.output, overwrite=args.overwrite)
    print(f"Wrote {path}")
    return 0


def _cmd_info(args: argparse.Namespace, settings: Settings) -> int:
    pack = DataPackReader.open(args.pack, tolerance=settings.calculator.tolerance)
    print(f"Data pack: {args.pack}")
    print(f"Version: {pack.version()}")
    for aircraft in pack.aircraft():
        corrections = pack.corrections(aircraft)
        types = ", ".join(corrections.types()) if corrections else "none"
        print(f"  {aircraft}: corrections {types}")
    return 0


def _cmd_calculate(args: argparse.Namespace, settings: Settings) -> int:
    phase = Phase(args.command)
    try:
        request = build_request(args, phase)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    pack = DataPackReader.open(args.pack, tolerance=settings.calculator.tolerance)
    calculator = PerformanceCalculator(
        pack,
        validation=ValidationService(settings.validation),
        settings=settings.calculator,
    )
    outcome = calculator.calculate(request)
    if not outcome.ok:
        report = ErrorReport.from_error(outcome.error)
        if args.json:
            print(json.dumps({"error": asdict(report)}, indent=2))
        else:
            print(f"error: {report.message}", file=sys.stderr)
        return 1

    result = outcome.unwrap()
    policy = settings.company_policy if len(settings.company_policy) else pack.company_policy()
    tailwind_kt = request.conditions.tailwind_kt
    if phase is Phase.TAKEOFF:
        company = evaluate_company_limits(
            todr_m=result.takeoff.todr_m,
            asdr_m=result.takeoff.asdr_m,
            tora_m=request.runway_length_m,
            asda_m=request.runway_length_m,
            tailwind_kt=tailwind_kt,
            is_wet=request.conditions.surface.is_wet,
            policy=policy,
        )
    else:
        company = evaluate_company_limits(
            ldr_m=result.ldr_m,
            lda_m=request.runway_length_m,
            tailwind_kt=tailwind_kt,
            is_wet=request.conditions.surface.is_wet,
            policy=policy,
        )

    if args.json:
        data = result.to_dict()
        data["company_limits"] = {
            "status": company.status.value,
            "violations": list(company.violations),
        }
        print(json.dumps(data, indent=2, default=str))
    else:
        print(format_result(result))
        print(f"  Company limits: {company.status.value}")
        for violation in company.violations:
            print(f"    - {violation}")
    return 0


def _cmd_matrix(args: argparse.Namespace, settings: Settings) -> int:
    pack = DataPackReader.open(args.pack, tolerance=settings.calculator.tolerance)
    calculator = PerformanceCalculator(
        pack,
        validation=ValidationService(settings.validation),
        settings=settings.calculator,
    )
    report = run_matrix_file(args.cases, calculator)
    for case in report.cases:
        status = "PASS" if case.passed else "FAIL"
        detail = case.error or ", ".join(f"{k} {v:+.2f}%" for k, v in case.deltas.items())
        print(f"{status} {case.case_id}: {detail}")
    print(f"{report.passed}/{len(report.cases)} cases passed")
    return 0 if report.all_passed else 1


COMMANDS = {
    "build-pack": _cmd_build_pack,
    "info": _cmd_info,
    "takeoff": _cmd_calculate,
    "landing": _cmd_calculate,
    "matrix": _cmd_matrix,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code: 0 for success, 1 for a failed command, 2 for bad input.
    """
    args = parse_args(argv)
    try:
        if args.logging_config is not None:
            initialize_logging(args.logging_config, use_platform_dir=False)
        elif not is_initialized():
            initialize_logging()
        settings = load_settings(args.config)
    except (LoggingError, ConfigError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    try:
        return COMMANDS[args.command](args, settings)
    except PerformanceError as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"error: {e}", file=sys.stderr)
        return 1
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.exception("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
