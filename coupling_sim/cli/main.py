"""CLI entrypoint for validating, inspecting and running a coupled component."""

from __future__ import annotations

import argparse
import csv
import json
from pathlib import Path
from typing import Any

from coupling_sim.core import CouplingEngine
from coupling_sim.errors import CouplingError, MalformedConfiguration
from coupling_sim.io import ConfigLoader
from coupling_sim.kernels import create_kernel
from coupling_sim.model import ComponentDescription, ExchangeItem, TimeOrdering, TimeStamp


def _write_jsonl(path: str, rows: list[dict[str, Any]]) -> None:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as f:
        for row in rows:
            f.write(json.dumps(row, ensure_ascii=False) + "\n")


def _write_json(path: str, payload: dict[str, Any]) -> None:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def _write_events_csv(path: str, rows: list[dict[str, Any]]) -> None:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    fieldnames = [
        "event_id",
        "seq",
        "correlation_id",
        "time",
        "type",
        "quantity_id",
        "element_set_id",
        "value_count",
        "payload",
    ]
    with output.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            record = {name: row.get(name) for name in fieldnames[:-1]}
            record["payload"] = json.dumps(row.get("payload", {}), ensure_ascii=False)
            writer.writerow(record)


def _item_summary(item: ExchangeItem, description: ComponentDescription) -> dict[str, Any]:
    quantity = item.quantity
    return {
        "quantity": quantity.id,
        "element_set": item.element_set_id,
        "element_count": description.element_set(item.element_set_id).element_count,
        "value_kind": quantity.value_kind.value,
        "dimension": str(quantity.dimension),
        "unit": quantity.unit.id,
    }


def describe_surface(description: ComponentDescription) -> dict[str, Any]:
    horizon = description.time_horizon
    return {
        "model_id": description.model_id,
        "model_description": description.model_description,
        "time_horizon": {
            "start": horizon.start.modified_julian_day,
            "end": horizon.end.modified_julian_day,
            "start_iso": horizon.start.isoformat(),
            "end_iso": horizon.end.isoformat(),
            "time_step_seconds": horizon.time_step_seconds,
        },
        "element_sets": {
            element_set.id: element_set.element_count for element_set in description.element_sets
        },
        "outputs": [_item_summary(item, description) for item in description.outputs],
        "inputs": [_item_summary(item, description) for item in description.inputs],
        "extras": dict(description.extras),
    }


def cmd_validate(args: argparse.Namespace) -> int:
    loader = ConfigLoader()
    issues = loader.validate(args.config, args.element_sets)
    if issues:
        for issue in issues:
            print(f"[ERROR] {issue.path}: {issue.message}")
        return 1
    description = loader.load(args.config, args.element_sets)
    try:
        # kernel resolution must pass during validate
        create_kernel(description.extras.get("kernel", "default"), dict(description.extras))
    except ValueError as exc:
        print(f"[ERROR] {args.config}: {exc}")
        return 1
    print(
        f"[OK] config validation passed, model={description.model_id}, "
        f"outputs={len(description.outputs)}, inputs={len(description.inputs)}"
    )
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    try:
        description = ConfigLoader().load(args.config, args.element_sets)
    except MalformedConfiguration as exc:
        print(f"[ERROR] {exc}")
        return 1
    print(json.dumps(describe_surface(description), ensure_ascii=False, indent=2))
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    if args.steps is not None and args.steps < 0:
        print("[ERROR] --steps must be >= 0")
        return 1

    properties = {"ConfigFile": args.config}
    if args.element_sets:
        properties["ElementSetFile"] = args.element_sets

    engine = CouplingEngine(trace_dir=args.trace_dir)
    if not engine.initialize(properties):
        error = engine.initialization_error
        print(f"[ERROR] {error}")
        return 1

    horizon = engine.get_time_horizon()
    stop_at = TimeStamp(args.until) if args.until is not None else horizon.end
    exit_code = 0
    steps = 0
    try:
        while engine.get_current_time().compare(stop_at) == TimeOrdering.BEFORE:
            if args.steps is not None and steps >= args.steps:
                break
            if not engine.perform_time_step():
                print(f"[ERROR] time step failed at {engine.get_current_time()}")
                exit_code = 2
                break
            steps += 1
            for item in engine.outputs:
                engine.get_values(item.quantity.id, item.element_set_id)
    except CouplingError as exc:
        print(f"[ERROR] {exc}")
        exit_code = 2
    finally:
        now = engine.get_current_time()
        engine.finish()

    events = [event.model_dump(mode="json") for event in engine.events]
    metrics = engine.metric_report()

    events_out = args.events_out or "artifacts/events.jsonl"
    metrics_out = args.metrics_out or "artifacts/metrics.json"
    _write_jsonl(events_out, events)
    _write_json(metrics_out, metrics)
    if args.events_csv_out:
        _write_events_csv(args.events_csv_out, events)

    if exit_code == 0:
        print(
            f"[OK] run completed, model={engine.model_id}, steps={steps}, now={now}, "
            f"events={len(events)}, metrics={metrics_out}"
        )
    return exit_code


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-c", "--config", required=True, help="path to configuration XML/YAML/JSON")
    parser.add_argument(
        "-e",
        "--element-sets",
        default=None,
        help="path to element set document XML/YAML/JSON",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="coupling-sim", description="Model coupling engine CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser("validate", help="validate configuration documents")
    _add_config_arguments(validate_parser)
    validate_parser.set_defaults(func=cmd_validate)

    inspect_parser = subparsers.add_parser("inspect", help="print the exchange surface as JSON")
    _add_config_arguments(inspect_parser)
    inspect_parser.set_defaults(func=cmd_inspect)

    run_parser = subparsers.add_parser("run", help="drive one component through its time horizon")
    _add_config_arguments(run_parser)
    run_parser.add_argument("--steps", type=int, default=None, help="maximum number of time steps")
    run_parser.add_argument("--until", type=float, default=None, help="stop time as modified julian day")
    run_parser.add_argument("--events-out", default=None, help="path to write JSONL events")
    run_parser.add_argument("--events-csv-out", default=None, help="path to write CSV events")
    run_parser.add_argument("--metrics-out", default=None, help="path to write metric JSON")
    run_parser.add_argument("--trace-dir", default=None, help="directory for the trace file")
    run_parser.set_defaults(func=cmd_run)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
