#!/usr/bin/env python3
"""appforge - generate web applications from a specification.

Usage:
    python main.py build --spec idea.txt  # plan, generate, validate, write
    python main.py build --spec idea.txt --type react --batch  # override type, batched generation
    python main.py plan --spec idea.txt  # plan only
    python main.py validate ./generated/apps/my-app  # validate files on disk
    python main.py consume --url http://localhost:5001 --project ID --token T --spec idea.txt
"""

import argparse
import logging
import os
import sys

from client.consumer import StreamConsumer
from config.stacks import STACKS
from core.categories import category_for_path
from core.errors import GenerationPipelineError
from core.events import EventType
from core.pipeline import build_pipeline
from core.state import GeneratedFile
from core.store import ArtifactStore
from core.validator import CodeValidator
from agents.planner import PlannerAgent
from utils.folder_naming import get_output_dir, write_files
from utils.llm import LLMClient

SKIPPED_DIRS = {"node_modules", ".git", ".next", "dist", "build"}


def _read_spec(path):
    if path == "-":
        return sys.stdin.read()
    with open(path) as fp:
        return fp.read()


def _format_issues(issues):
    """Format issues for CLI display."""
    lines = []
    for issue in issues:
        loc = issue.file
        if issue.line:
            loc += f":{issue.line}"
        marker = "ERROR" if issue.severity == "error" else "WARN"
        lines.append(f"  [{marker}] {loc}: {issue.message}")
        if issue.suggestion:
            lines.append(f"           Fix: {issue.suggestion}")
    return "\n".join(lines)


def _print_report(report, verbose=False):
    print(f"\nQuality score: {report.quality_score}/10")
    print(f"Security risk: {report.security_risk}")
    print(f"Errors: {report.error_count}  Warnings: {report.warning_count}")
    print(f"Result: {'PASS' if report.passed else 'FAIL'}")
    for path, result in sorted(report.files.items()):
        issues = result.errors + (result.warnings if verbose else [])
        if issues:
            print(f"\n{path} (score {result.score})")
            print(_format_issues(issues))
    if report.security_issues:
        print("\nSecurity:")
        print(_format_issues(report.security_issues))
    if verbose and report.suggestions:
        print("\nSuggestions:")
        for suggestion in report.suggestions:
            print(f"  - {suggestion}")


def _print_event(event, verbose):
    data = event.data
    if event.type == EventType.STATUS:
        print(f"[{data['phase']}] {data['message']}")
    elif event.type == EventType.FILE_COMPLETE:
        print(f"  + {event.path}")
    elif event.type == EventType.FILE_ERROR:
        print(f"  ! {event.path}: {data['message']}")
    elif event.type == EventType.BATCH_PROGRESS:
        print(f"  {data['completed']}/{data['total']} files")
    elif event.type == EventType.FILE_START and verbose:
        print(f"  . {event.path}")
    elif event.type == EventType.COMPLETE:
        print(data["message"])
    elif event.type == EventType.ERROR:
        print(f"Error: {data['message']}")


def cmd_build(args):
    """Plan, generate and validate, then write the files to disk."""
    specification = _read_spec(args.spec)
    store = ArtifactStore()
    project = store.create_project("cli", args.name or "cli-project")
    run = store.create_run(project.id, specification, project_type=args.type or "")

    with LLMClient() as llm:
        pipeline = build_pipeline(llm, store, batch=args.batch)
        files, report = pipeline.run(run, lambda e: _print_event(e, args.verbose))

    run = store.get_run(run.id)
    if files:
        output_dir = args.output or get_output_dir(run.project_type or "nextjs", specification)
        written = write_files(output_dir, files)
        print(f"\nOutput: {output_dir}")
        print(f"Wrote {len(written)} file(s)")
    if run.failed_files:
        print(f"Failed: {', '.join(run.failed_files)}")
    if report is not None:
        _print_report(report, args.verbose)
    print(f"\nStatus: {run.status}")
    return 0 if run.status == "completed" else 1


def cmd_plan(args):
    """Run the planner only and print the ordered file list."""
    specification = _read_spec(args.spec)
    with LLMClient() as llm:
        plan = PlannerAgent(llm).create_plan(specification, project_type=args.type)

    print(f"Project type: {plan.project_type}")
    if plan.architecture:
        print(f"Architecture: {plan.architecture}")
    print(f"\nGeneration order ({len(plan.tasks)} files):")
    for task in plan.ordered_tasks():
        deps = f"  <- {', '.join(task.dependencies)}" if task.dependencies else ""
        print(f"  {task.path:40s} [{task.category.value}]{deps}")
    if plan.dependencies:
        print("\nPackages:")
        for dep in plan.dependencies:
            print(f"  {dep.package}@{dep.version} ({dep.type})")
    return 0


def _load_tree(root):
    files = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRS)
        for filename in sorted(filenames):
            full = os.path.join(dirpath, filename)
            path = os.path.relpath(full, root).replace(os.sep, "/")
            try:
                with open(full, encoding="utf-8") as fp:
                    content = fp.read()
            except UnicodeDecodeError:
                continue
            files.append(GeneratedFile(path=path, content=content, category=category_for_path(path)))
    return files


def cmd_validate(args):
    """Validate a directory of already-generated files."""
    if not os.path.isdir(args.directory):
        print(f"Not a directory: {args.directory}")
        return 2
    files = _load_tree(args.directory)
    if not files:
        print("No files to validate")
        return 2
    report = CodeValidator().validate_project(files, project_type=args.type)
    print(f"Validated {len(files)} file(s)")
    _print_report(report, args.verbose)
    return 0 if report.passed else 1


def cmd_consume(args):
    """Start a run on a server and follow its progress stream."""
    payload = {"projectId": args.project, "specification": _read_spec(args.spec)}
    if args.type:
        payload["projectType"] = args.type
    if args.batch:
        payload["batch"] = True

    consumer = StreamConsumer(args.url, args.token, on_event=lambda e, _s: _print_event(e, args.verbose))
    state = consumer.start_generation(payload)
    if state.is_complete:
        print(f"Run {state.run_id}: {len(state.files)} file(s)")
        return 0
    print(f"Stream ended: {state.error}")
    return 1


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="appforge",
        description="Generate web applications from a specification",
    )
    parser.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "WARNING"))
    subparsers = parser.add_subparsers(dest="command")
    types = sorted(STACKS)

    build_parser = subparsers.add_parser("build", help="Plan, generate and validate a project")
    build_parser.add_argument("--spec", required=True, help="Specification file ('-' for stdin)")
    build_parser.add_argument("--type", choices=types, help="Override project type detection")
    build_parser.add_argument("--name", help="Project name")
    build_parser.add_argument("--output", help="Output directory (default: generated/<type>/<name>)")
    build_parser.add_argument("--batch", action="store_true", help="Generate independent files concurrently")
    build_parser.add_argument("--verbose", action="store_true", help="Show warnings and per-file progress")

    plan_parser = subparsers.add_parser("plan", help="Show the generation plan only")
    plan_parser.add_argument("--spec", required=True, help="Specification file ('-' for stdin)")
    plan_parser.add_argument("--type", choices=types, help="Override project type detection")

    validate_parser = subparsers.add_parser("validate", help="Validate files on disk")
    validate_parser.add_argument("directory")
    validate_parser.add_argument("--type", choices=types, default="nextjs")
    validate_parser.add_argument("--verbose", action="store_true", help="Show warnings and suggestions")

    consume_parser = subparsers.add_parser("consume", help="Start a run on a server and follow it")
    consume_parser.add_argument("--url", default="http://localhost:5001")
    consume_parser.add_argument("--project", required=True, help="Project id")
    consume_parser.add_argument("--token", default=os.environ.get("APPFORGE_TOKEN", ""))
    consume_parser.add_argument("--spec", required=True, help="Specification file ('-' for stdin)")
    consume_parser.add_argument("--type", choices=types)
    consume_parser.add_argument("--batch", action="store_true")
    consume_parser.add_argument("--verbose", action="store_true")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "build": cmd_build,
        "plan": cmd_plan,
        "validate": cmd_validate,
        "consume": cmd_consume,
    }
    if args.command not in commands:
        parser.print_help()
        return 1
    try:
        return commands[args.command](args)
    except GenerationPipelineError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
