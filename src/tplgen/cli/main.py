#!/usr/bin/env python3
"""Entry point for the tplgen CLI."""

from __future__ import annotations

import argparse
import json
import re
import sys
import time
from pathlib import Path
from typing import Any, Iterable

from tplgen import __version__
from tplgen.adapters.sln_file import SlnFileAssembler
from tplgen.adapters.xml_template_loader import XmlTemplateLoader
from tplgen.app.export.service import ExportRequest, VsTemplateExporter
from tplgen.app.generation.service import GenerationRequest, GenerationService, RunStatus
from tplgen.domain.diagnostics import GeneratorError, LogLevel
from tplgen.domain.template import SourceLanguage
from tplgen.domain.tokens import UnresolvedPolicy
from tplgen.ports.template_repo import TemplateLoadError
from tplgen.settings import SETTINGS, GeneratorSettings, SettingsError, load_generator_settings
from tplgen.utils.diagnostics import DiagnosticSink
from tplgen.utils.telemetry import RunEvent, read_events, record_run
from tplgen.utils.telemetry import clear as telemetry_clear
from tplgen.utils.telemetry import summarize as telemetry_summarize

HELP_OVERVIEW = """\
Generate projects from declarative templates.

Shorthand forms:
  tplgen <template> <destination> [<solution>] [key:value ...]   generate a project
  tplgen --vs <template> <output> [key:value ...]                export a VS project template
  tplgen <template>                                              list template variables
"""

IDE_CHOICES = ("vs",)
SUBCOMMANDS = {"generate", "export", "vars", "telemetry"}
_VALUE_FLAGS = {"--log-level", "--language", "--unresolved", "--solution", "--ide", "--limit", "--recent"}
_VARIABLE_RE = re.compile(r"^[A-Za-z_][\w.-]*:")
_DRIVE_RE = re.compile(r"^[A-Za-z]:[\\/]")



def _is_variable(item: str) -> bool:
    return bool(_VARIABLE_RE.match(item)) and not _DRIVE_RE.match(item)


def _parse_variables(items: Iterable[str] | None) -> dict[str, str]:
    variables: dict[str, str] = {}
    for item in items or ():
        if ":" not in item:
            raise ValueError(f"Variable override '{item}' must be in key:value format")
        key, value = item.split(":", 1)
        if not key.strip():
            raise ValueError(f"Variable override '{item}' has an empty name")
        variables[key.strip()] = value
    return variables


def _split_solution(extra: list[str]) -> tuple[str | None, list[str]]:
    """Pick the optional solution path out of trailing positionals."""

    solution = None
    variables: list[str] = []
    for item in extra:
        if solution is None and not variables and not _is_variable(item):
            solution = item
        else:
            variables.append(item)
    return solution, variables


def _generator_settings(args: argparse.Namespace) -> GeneratorSettings:
    overrides: dict[str, Any] = {
        "overwrite": True if getattr(args, "overwrite", False) else None,
        "raise_on_error": False if getattr(args, "suppress_errors", False) else None,
        "log_level": getattr(args, "log_level", None),
        "language": getattr(args, "language", None),
        "unresolved_variables": getattr(args, "unresolved", None),
    }
    return load_generator_settings(SETTINGS, overrides)


def _build_services(settings: GeneratorSettings) -> tuple[GenerationService, VsTemplateExporter]:
    loader = XmlTemplateLoader()
    generation = GenerationService(loader, SlnFileAssembler(), settings)
    exporter = VsTemplateExporter(loader, settings)
    return generation, exporter


def _record_run(event: str, template: str, status: RunStatus, started: float, summary: dict[str, Any]) -> None:
    counts = {key: summary[key] for key in ("errors", "warnings") if key in summary}
    counts["files"] = len(summary.get("written", []))
    duration_ms = (time.perf_counter() - started) * 1000
    record_run(SETTINGS, RunEvent(event, status.value, template, counts, duration_ms))


def _report_abort(exc: GeneratorError) -> None:
    print(f"[{exc.diagnostic.level.label}]  {exc.diagnostic.format()}", file=sys.stderr)


def _generate_cmd(args: argparse.Namespace) -> int:
    started = time.perf_counter()
    try:
        settings = _generator_settings(args)
        solution, extra = _split_solution(args.extra)
        variables = _parse_variables(extra)
    except (SettingsError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 2
    solution = args.solution or solution
    generation, _ = _build_services(settings)
    request = GenerationRequest(
        destination=Path(args.destination),
        solution=Path(solution) if solution else None,
        variables=variables,
        language=settings.language,
    )
    try:
        result = generation.generate(Path(args.template), request)
    except GeneratorError as exc:
        _report_abort(exc)
        _record_run("generate.run", args.template, RunStatus.FATAL, started, {"errors": 1})
        return 1

    summary = result.to_dict()
    _record_run("generate.run", args.template, result.status, started, summary)
    if args.json:
        print(json.dumps(summary, indent=2, ensure_ascii=False))
    else:
        print(
            f"Generation {result.status.value}: {len(result.written)} file(s) written to {request.destination}"
            f" ({summary['errors']} error(s), {summary['warnings']} warning(s))"
        )
    return 1 if result.status is RunStatus.FATAL else 0


def _export_cmd(args: argparse.Namespace) -> int:
    started = time.perf_counter()
    try:
        settings = _generator_settings(args)
        variables = _parse_variables(args.variables)
    except (SettingsError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 2
    _, exporter = _build_services(settings)
    request = ExportRequest(output=Path(args.output), variables=variables, language=settings.language)
    try:
        result = exporter.export(Path(args.template), request)
    except GeneratorError as exc:
        _report_abort(exc)
        _record_run("export.run", args.template, RunStatus.FATAL, started, {"errors": 1})
        return 1

    summary = result.to_dict()
    _record_run("export.run", args.template, result.status, started, summary)
    if args.json:
        print(json.dumps(summary, indent=2, ensure_ascii=False))
    else:
        print(
            f"Export {result.status.value}: {len(result.written)} file(s) written to {request.output}"
            f" ({summary['errors']} error(s), {summary['warnings']} warning(s))"
        )
    return 1 if result.status is RunStatus.FATAL else 0


def _format_table(rows: list[list[str]]) -> list[str]:
    widths = [max(len(row[index]) for row in rows) for index in range(len(rows[0]))]
    lines = []
    for number, row in enumerate(rows):
        lines.append("  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip())
        if number == 0:
            lines.append("  ".join("-" * width for width in widths))
    return lines


def _vars_cmd(args: argparse.Namespace) -> int:
    try:
        settings = _generator_settings(args)
    except SettingsError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    sink = DiagnosticSink(settings.log_level, writer=sys.stderr, raise_on_error=False)
    try:
        template = XmlTemplateLoader().load(Path(args.template), sink)
    except TemplateLoadError:
        return 1
    variables = [variable for variable in template.variables.values() if args.all or not variable.hidden]
    record_run(SETTINGS, RunEvent("template.vars", "ok", args.template, {"variables": len(variables)}))
    if args.json:
        payload = [
            {
                "name": variable.name,
                "type": variable.type.value,
                "default": variable.value,
                "semantic": variable.semantic,
                "description": variable.description,
                "hidden": variable.hidden,
            }
            for variable in variables
        ]
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0
    if template.name:
        print(template.name)
    if not variables:
        print("Template declares no variables")
        return 0
    rows = [["Name", "Type", "Default", "Semantic"]]
    rows.extend([variable.name, variable.type.value, variable.value, variable.semantic or ""] for variable in variables)
    for line in _format_table(rows):
        print(line)
    return 0


def _telemetry_cmd(args: argparse.Namespace) -> int:
    if args.telemetry_command == "report":
        events = read_events(SETTINGS, args.recent)
        print(json.dumps(telemetry_summarize(events), indent=2, ensure_ascii=False))
        return 0
    if args.telemetry_command == "clear":
        telemetry_clear(SETTINGS)
        print("Telemetry log cleared")
        return 0
    if args.telemetry_command == "tail":
        for evt in read_events(SETTINGS, args.limit):
            print(json.dumps(evt, ensure_ascii=False))
        return 0
    print("Unsupported telemetry command", file=sys.stderr)
    return 2


def _add_run_options(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--overwrite", action="store_true", help="Write into a non-empty destination directory")
    cmd.add_argument(
        "--suppress-errors",
        action="store_true",
        help="Record errors and keep going instead of aborting on the first one",
    )
    cmd.add_argument(
        "--log-level",
        choices=[level.name.lower() for level in LogLevel],
        help="Lowest diagnostic level to print (default: info)",
    )
    cmd.add_argument(
        "--language",
        choices=[language.value for language in SourceLanguage],
        help="Source language of the generated project (default: cs)",
    )
    cmd.add_argument(
        "--unresolved",
        choices=[policy.value for policy in UnresolvedPolicy],
        help="What to do with references to undeclared variables (default: empty)",
    )
    cmd.add_argument("--json", action="store_true", help="Emit machine-readable summary output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tplgen",
        description=HELP_OVERVIEW,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"tplgen {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    generate_cmd = sub.add_parser("generate", help="Generate a project from a template")
    generate_cmd.add_argument("template", help="Template description file")
    generate_cmd.add_argument("destination", help="Destination directory")
    generate_cmd.add_argument(
        "extra",
        nargs="*",
        help="Optional solution path followed by key:value variable overrides",
    )
    generate_cmd.add_argument("--solution", help="Solution file to register generated projects in")
    _add_run_options(generate_cmd)
    generate_cmd.set_defaults(func=_generate_cmd)

    export_cmd = sub.add_parser("export", help="Export a template as an IDE project template")
    export_cmd.add_argument("--ide", choices=IDE_CHOICES, default="vs", help="Target IDE (default: vs)")
    export_cmd.add_argument("template", help="Template description file")
    export_cmd.add_argument("output", help="Output directory for the IDE template")
    export_cmd.add_argument("variables", nargs="*", help="key:value variable overrides")
    _add_run_options(export_cmd)
    export_cmd.set_defaults(func=_export_cmd)

    vars_cmd = sub.add_parser("vars", help="List the variables a template declares")
    vars_cmd.add_argument("template", help="Template description file")
    vars_cmd.add_argument("--all", action="store_true", help="Include hidden variables")
    vars_cmd.add_argument("--json", action="store_true", help="Emit machine-readable output")
    vars_cmd.add_argument(
        "--log-level",
        choices=[level.name.lower() for level in LogLevel],
        help="Lowest diagnostic level to print (default: info)",
    )
    vars_cmd.set_defaults(func=_vars_cmd)

    telemetry_cmd = sub.add_parser("telemetry", help="Inspect local run telemetry")
    telemetry_sub = telemetry_cmd.add_subparsers(dest="telemetry_command", required=True)
    report_cmd = telemetry_sub.add_parser("report", help="Summarize recorded events")
    report_cmd.add_argument("--recent", type=int, default=0, help="Only summarize the most recent N events")
    tail_cmd = telemetry_sub.add_parser("tail", help="Print the most recent events")
    tail_cmd.add_argument("--limit", type=int, default=20)
    telemetry_sub.add_parser("clear", help="Delete the telemetry log")
    telemetry_cmd.set_defaults(func=_telemetry_cmd)

    return parser


def _positionals(argv: list[str]) -> list[str]:
    items: list[str] = []
    skip = False
    for item in argv:
        if skip:
            skip = False
            continue
        if item.startswith("-"):
            skip = item in _VALUE_FLAGS
            continue
        items.append(item)
    return items


def _preprocess_argv(argv: list[str]) -> list[str]:
    """Normalize argv to accept the positional shorthand forms."""

    if not argv:
        return argv
    head = argv[0]
    if head in SUBCOMMANDS:
        return argv
    if head.startswith("--") and head[2:] in IDE_CHOICES:
        return ["export", "--ide", head[2:], *argv[1:]]
    positionals = _positionals(argv)
    if not positionals:
        return argv
    if len(positionals) == 1:
        return ["vars", *argv]
    return ["generate", *argv]


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    raw_args = sys.argv[1:] if argv is None else argv
    args = parser.parse_args(_preprocess_argv(list(raw_args)))
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
