"""wgslpp — CLI entry point.

Flattens WGSL shaders: resolves ``#import``, evaluates ``#if``/``#else``/
``#endif`` against named conditions, and substitutes ``#(name)`` constants.

Usage:
    wgslpp shader.wgsl --cond SHADOWS --const workgroup_x=8   # to stdout
    wgslpp shader.wgsl --options-file opts.yaml -o out.wgsl   # to file
    wgslpp --dir shaders/ --out-dir build/                    # batch
    wgslpp shader.wgsl --format json                          # JSON
    wgslpp shader.wgsl --scan                                 # list options
    wgslpp --env                                              # show config
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from wgslpp.discovery.catalog import BatchResult, find_shaders, process_all
from wgslpp.discovery.config import load_config, load_options, print_env
from wgslpp.discovery.scanner import scan_shader
from wgslpp.preprocessor import ProcessOptions, ShaderPreprocessor


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------

def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wgslpp",
        description="Preprocess WGSL shaders: #import, #if/#else/#endif and #(constant).",
    )

    # Input
    parser.add_argument(
        "shaders",
        nargs="*",
        type=Path,
        help="Shader files to process",
    )
    parser.add_argument(
        "--dir",
        action="append",
        type=Path,
        metavar="DIR",
        help="Process every .wgsl file under DIR (repeatable)",
    )

    # Options
    parser.add_argument(
        "--cond",
        action="append",
        metavar="NAME[=BOOL]",
        help="Set a condition (repeatable). Example: --cond SHADOWS or --cond SHADOWS=false",
    )
    parser.add_argument(
        "--const",
        action="append",
        metavar="NAME=VALUE",
        help="Set a constant (repeatable). Example: --const workgroup_x=8",
    )
    parser.add_argument(
        "--options-file",
        type=Path,
        help="YAML or JSON file with 'conditions' and 'constants' mappings",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        help="Maximum #import nesting depth",
    )

    # Output
    parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Write output to a file instead of stdout (single shader only)",
    )
    parser.add_argument(
        "--out-dir",
        type=Path,
        help="Write each processed shader into DIR under its file name",
    )
    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        dest="format",
        help="Output format: text (default) or json",
    )

    # Modes
    parser.add_argument(
        "--scan",
        action="store_true",
        help="List imports, conditions and constants used by each shader, then exit",
    )
    parser.add_argument(
        "--env",
        action="store_true",
        help="Print resolved configuration, then exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug logging",
    )

    return parser


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

_TRUE = ("true", "yes", "on", "1")
_FALSE = ("false", "no", "off", "0")


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"Condition '{name}' expects a boolean, got '{value}'")


def _parse_scalar(value: str) -> Any:
    """Coerce a CLI string to int, float or bool where it looks like one."""
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def _parse_options(console: Console, args: argparse.Namespace) -> ProcessOptions:
    """Build options from --cond and --const flags."""
    conditions: Dict[str, bool] = {}
    constants: Dict[str, Any] = {}

    for item in args.cond or []:
        name, sep, value = item.partition("=")
        conditions[name.strip()] = _parse_bool(name, value) if sep else True

    for item in args.const or []:
        if "=" not in item:
            console.print(f"[yellow]Ignoring malformed --const '{item}' (expected NAME=VALUE)[/]")
            continue
        name, _, value = item.partition("=")
        constants[name.strip()] = _parse_scalar(value)

    return ProcessOptions(conditions=conditions, constants=constants)


def _collect_inputs(args: argparse.Namespace) -> List[Path]:
    inputs = list(args.shaders)
    if args.dir:
        inputs.extend(find_shaders(args.dir))
    return inputs


def _output_targets(
    inputs: List[Path], out_dir: Path, roots: List[Path]
) -> Dict[Path, Path]:
    """Map each input to its file under *out_dir*.

    Shaders found under a --dir root keep their path relative to that root;
    other inputs are written under their file name.  Two different sources
    mapping to the same target raise ValueError.
    """
    resolved_roots = [root.resolve() for root in roots]
    targets: Dict[Path, Path] = {}
    sources: Dict[Path, Path] = {}
    for path in inputs:
        source = path.resolve()
        relative = Path(path.name)
        for root in resolved_roots:
            try:
                relative = source.relative_to(root)
                break
            except ValueError:
                continue
        target = out_dir / relative
        if sources.setdefault(target, source) != source:
            raise ValueError(
                f"{sources[target]} and {source} would both be written to {target}"
            )
        targets[path] = target
    return targets


def _format_raw_output(result: BatchResult, fmt: str) -> str:
    """Format a batch for stdout: concatenated text, or full JSON."""
    if fmt == "json":
        data = {
            "shaders": [
                {"path": str(e.path), "output": e.output, "sha256": e.content_hash}
                for e in result.entries
            ],
            "errors": [
                {"input": str(path), **err.to_dict()}
                for path, err in result.errors.items()
            ],
        }
        return json.dumps(data, indent=2, ensure_ascii=False)
    return "\n".join(e.output for e in result.entries)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


# ------------------------------------------------------------------
# Modes
# ------------------------------------------------------------------

def run_scan(console: Console, inputs: List[Path], fmt: str) -> int:
    """Print the directive metadata of each shader."""
    report: List[Dict[str, Any]] = []
    exit_code = 0
    for path in inputs:
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            console.print(f"[bold red]✗[/] Cannot read [cyan]{escape(str(path))}[/]: {escape(str(exc))}")
            exit_code = 1
            continue
        meta = scan_shader(source)
        if not meta.is_valid:
            exit_code = 1
        report.append({
            "path": str(path),
            "imports": meta.imports,
            "conditions": meta.conditions,
            "constants": meta.constants,
            "max_nesting": meta.max_nesting,
            "invalid_lines": [{"line": n, "text": t} for n, t in meta.invalid_lines],
        })

    if fmt == "json":
        print(json.dumps(report, indent=2, ensure_ascii=False))
        return exit_code

    out = Console(highlight=False)
    for item in report:
        out.print(f"[bold]{escape(item['path'])}[/]")
        out.print(f"  imports:    {escape(', '.join(item['imports'])) or '(none)'}")
        out.print(f"  conditions: {', '.join(item['conditions']) or '(none)'}")
        out.print(f"  constants:  {', '.join(item['constants']) or '(none)'}")
        for bad in item["invalid_lines"]:
            out.print(f"  [red]line {bad['line']}:[/] {escape(bad['text'])}", highlight=False)
    return exit_code


def run_process(
    console: Console,
    preprocessor: ShaderPreprocessor,
    inputs: List[Path],
    options: ProcessOptions,
    args: argparse.Namespace,
    targets: Optional[Dict[Path, Path]] = None,
) -> int:
    """Process all inputs with one shared preprocessor."""
    result = process_all(inputs, options, preprocessor)

    if targets is not None:
        for entry in result.entries:
            target = targets[entry.path]
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(entry.output, encoding="utf-8")
            console.print(f"[green]✓[/] {entry.path} → {target}", highlight=False)
    elif args.output:
        args.output.write_text(_format_raw_output(result, args.format), encoding="utf-8")
        console.print(f"[green]✓[/] Written to {args.output}", highlight=False)
    else:
        print(_format_raw_output(result, args.format))

    for path, err in result.errors.items():
        console.print(f"[bold red]✗[/] {escape(str(path))}: [red]{err.kind}[/] {escape(err.message)}", highlight=False)
    return 0 if result.ok else 1


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    console = Console(stderr=True)

    try:
        env_config = load_config(project_dir=Path.cwd())
    except ValueError as exc:
        console.print(f"[bold red]Invalid configuration:[/] {exc}")
        return 2

    if args.max_depth is not None:
        env_config.preprocessor.max_import_depth = args.max_depth

    # --env: print environment and exit
    if args.env:
        print(print_env(env_config))
        return 0

    inputs = _collect_inputs(args)
    if not inputs:
        parser.print_help(sys.stderr)
        return 2
    if args.output and len(inputs) > 1 and args.format == "text":
        console.print("[bold red]--output with several shaders requires --format json or --out-dir.[/]")
        return 2

    if args.scan:
        return run_scan(console, inputs, args.format)

    try:
        options = env_config.options
        if args.options_file:
            options = options.merged(load_options(args.options_file))
        options = options.merged(_parse_options(console, args))
    except (OSError, ValueError) as exc:
        console.print(f"[bold red]Invalid options:[/] {exc}")
        return 2

    targets = None
    if args.out_dir:
        try:
            targets = _output_targets(inputs, args.out_dir, args.dir or [])
        except ValueError as exc:
            console.print(f"[bold red]Conflicting outputs:[/] {escape(str(exc))}")
            return 2

    preprocessor = ShaderPreprocessor(env_config.preprocessor)
    return run_process(console, preprocessor, inputs, options, args, targets)


def cli() -> None:
    """Main entry point for the wgslpp command."""
    try:
        exit_code = main()
    except KeyboardInterrupt:
        Console(stderr=True).print("\n[dim]Interrupted.[/]")
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
