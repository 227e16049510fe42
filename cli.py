"""
CLI entry point for the career evidence pipeline. Wires: load JSON -> refs -> clusters -> narratives -> report
"""

import argparse
import json
import logging
import os
import webbrowser
from datetime import datetime, timezone

from evaluator import run_pipeline
from report.renderer import render
from scoring.frameworks import get_all_frameworks, FRAMEWORK_TYPES
from scoring.narrative import describe_gate
from scoring.utils import load_gates, load_preset, list_presets


def _print_json(obj):
    print(json.dumps(obj, indent=2, default=str))


def _load_json_file(path: str, description: str):
    """Load a JSON file and return the parsed object, or None after printing why it failed."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        print(f"Failed to read {description} {path}: {e}")
        return None


def _print_frameworks():
    for fw in get_all_frameworks():
        print(f"{fw.type:6} {' -> '.join(fw.component_order)}")
        print(f"       {fw.tagline}")


def resolve_gates(args) -> dict:
    """CLI flags over environment over YAML (preset if given) over defaults."""
    if args.preset:
        gates = load_preset(args.preset, path=args.gates_config or None)
    else:
        gates = load_gates(path=args.gates_config or None)
    flag_map = {
        'min_activities': args.min_activities,
        'min_tool_types': args.min_tool_types,
        'max_observer_ratio': args.max_observer_ratio,
        'min_cluster_size': args.min_cluster_size,
    }
    for key, value in flag_map.items():
        if value is not None:
            gates[key] = value
    return gates


def _open_file_in_browser(path: str):
    """Open a file URL in the system default web browser."""
    webbrowser.open("file://" + os.path.abspath(path))


def write_output(fmt: str, rendered: str, args):
    """Write output to file or stdout and optionally open HTML in browser."""
    if fmt in ("html", "md", "csv") or args.out_file.strip():
        ext_map = {"html": "html", "md": "md", "csv": "csv", "json": "json"}
        ext = ext_map.get(fmt, "txt")
        out_path = args.out_file.strip() or f"narratives_{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%SZ')}.{ext}"
        out_dir = os.path.dirname(out_path)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        # newline='' is safe for CSV on Windows and harmless for other formats
        with open(out_path, "w", encoding="utf-8", newline='') as f:
            f.write(rendered)
        print(f"Wrote report to {out_path}")
        if args.open and fmt == "html":
            _open_file_in_browser(out_path)
    else:
        print(rendered)


def _print_failures(run):
    for cluster_id, failure in sorted(run.failures.items()):
        details = failure.context.get('gate_details') or []
        detail = f" ({', '.join(describe_gate(d) for d in details)})" if details else ''
        print(f"{cluster_id}: {failure.code}{detail}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Career evidence pipeline: cluster work activities and draft narratives")
    parser.add_argument("--activities", type=str, help="Path to JSON file containing an array of activities")
    parser.add_argument("--persona", type=str, help="Path to JSON file containing the persona (emails + per-tool identities)")
    parser.add_argument("--framework", type=str, default="STAR", help=f"Narrative framework ({', '.join(FRAMEWORK_TYPES)})")
    parser.add_argument("--output", type=str, default="text", help="Output format (text, md, html, csv, json)")
    parser.add_argument("--out-file", type=str, default="", help="Output file path (for HTML/CSV/MD). If omitted a default name will be used")
    parser.add_argument("--open", action="store_true", help="Open the generated HTML report in the default browser")
    # gate overrides; CONTRIB_MIN_ACTIVITIES etc. set the defaults when flags are omitted
    parser.add_argument("--min-cluster-size", type=int, default=None, help="Minimum activities per cluster (overrides CONTRIB_MIN_CLUSTER_SIZE env)")
    parser.add_argument("--min-activities", type=int, default=None, help="Gate: minimum activities per narrative (overrides CONTRIB_MIN_ACTIVITIES env)")
    parser.add_argument("--min-tool-types", type=int, default=None, help="Gate: minimum distinct tools per narrative (overrides CONTRIB_MIN_TOOL_TYPES env)")
    parser.add_argument("--max-observer-ratio", type=float, default=None, help="Gate: maximum share of observer-level activities (overrides CONTRIB_MAX_OBSERVER_RATIO env)")
    parser.add_argument("--preset", type=str, default="", help="Named gate preset from the gates config")
    parser.add_argument("--gates-config", type=str, default="", help="Path to gates YAML (default config/gates.yaml)")
    parser.add_argument("--list-frameworks", action="store_true", help="List narrative frameworks and exit")
    parser.add_argument("--list-presets", action="store_true", help="List gate presets and exit")
    parser.add_argument("--debug", action="store_true", help="Include debug diagnostics (JSON output only)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.list_frameworks:
        _print_frameworks()
        return 0
    if args.list_presets:
        _print_json(list_presets(args.gates_config or None))
        return 0

    if not args.activities or not args.persona:
        parser.error('--activities and --persona are required')
    if args.framework.upper() not in FRAMEWORK_TYPES:
        parser.error(f"Unknown framework '{args.framework}'. Expected one of: {', '.join(FRAMEWORK_TYPES)}")

    try:
        gates = resolve_gates(args)
    except ValueError as e:
        print(f"Invalid gate configuration: {e}")
        return 2

    activities = _load_json_file(args.activities, 'activities file')
    if activities is None:
        return 1
    if not isinstance(activities, list):
        print(f"Invalid activities file {args.activities}; expected an array of activities.")
        return 1
    persona = _load_json_file(args.persona, 'persona file')
    if persona is None:
        return 1

    try:
        run = run_pipeline(activities, persona, framework=args.framework, gates=gates, debug=args.debug)
    except (TypeError, ValueError) as e:
        print(f"Pipeline failed: {e}")
        return 1

    narratives = run.ordered_narratives()
    fmt = (args.output or "text").lower()
    summary = run.summary()
    rendered = render(narratives, fmt=fmt, summary=summary, generated_at=datetime.now(timezone.utc).isoformat())
    if fmt == 'json' and args.debug:
        doc = json.loads(rendered)
        doc['diagnostics'] = [d.__dict__ for d in run.diagnostics]
        doc['failures'] = {k: {'code': f.code, 'message': f.message, 'failed_gates': f.context.get('failed_gates', []), 'gate_details': f.context.get('gate_details', [])} for k, f in run.failures.items()}
        rendered = json.dumps(doc, indent=2, default=str)
    write_output(fmt, rendered, args)
    if fmt == 'text':
        _print_failures(run)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
