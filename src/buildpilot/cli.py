"""Command-line interface for buildpilot."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import cast

from dotenv import find_dotenv, load_dotenv

from .agent.loop import BuildLoop
from .agent.prompts import build_initial_conversation, build_initial_prompt, build_system_message
from .config import AppConfig
from .errors import ArtifactNotFoundError, BuildPilotError, StepBudgetExhausted
from .llm.client import LLMClient
from .release.locator import DEFAULT_EXCLUDED_DIRS, locate_static_output
from .release.publisher import publish_release
from .release.rewrite import request_rewrite_rule, write_rewrite_rule
from .shell import create_shell_adapter
from .workspace.archive import extract_archive, find_task_archive
from .workspace.survey import describe_directory, read_package_manifests

LOGGER = logging.getLogger(__name__)


class CLIArgs(argparse.Namespace):
    root: str | None
    max_steps: int | None
    model: str | None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buildpilot",
        description="Model-driven static build of a front-end project archive",
    )
    parser.add_argument(
        "--root",
        help="Directory holding task/, source/ and release/. Defaults to the current directory.",
    )
    parser.add_argument(
        "--max-steps",
        dest="max_steps",
        type=int,
        help="Maximum number of planner/command round-trips before giving up.",
    )
    parser.add_argument("--model", help="Model name sent to the chat-completions endpoint.")
    return parser


def apply_overrides(config: AppConfig, args: CLIArgs) -> AppConfig:
    if args.root:
        config.root_dir = args.root
    if args.max_steps is not None:
        if args.max_steps <= 0:
            raise BuildPilotError("--max-steps must be a positive integer")
        config.max_steps = args.max_steps
    if args.model:
        config.model = args.model
    return config


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = cast(CLIArgs, parser.parse_args(argv))
    load_dotenv(find_dotenv(usecwd=True))
    try:
        config = apply_overrides(AppConfig.from_env(), args)
        logging.basicConfig(
            level=getattr(logging, config.log_level, logging.WARNING),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        config.validate()
        run_build(config)
    except (BuildPilotError, OSError) as exc:
        LOGGER.debug("build_failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


def run_build(config: AppConfig) -> Path:
    """Run every stage from archive extraction to the rewrite rule file."""
    shell = create_shell_adapter(config.shell, max_output_bytes=config.max_output_bytes)
    client = LLMClient(
        api_key=config.api_key,
        api_url=config.api_url or "",
        model=config.model,
        temperature=config.temperature,
        timeout=config.request_timeout,
    )
    source_dir = config.source_dir
    release_dir = config.release_dir

    archive = find_task_archive(config.task_dir)
    print(f"Step 1: Extracting {archive.name}...")
    extract_archive(archive, source_dir, shell)

    print("Step 2: Collecting project info...")
    system_message = build_system_message(config.completion_token)
    conversation = build_initial_conversation(
        system_message,
        build_initial_prompt(
            working_directory=str(source_dir),
            shell_name=shell.name,
            directory_overview=describe_directory(source_dir),
            package_manifests=read_package_manifests(source_dir, relative_to=config.root_path),
            completion_token=config.completion_token,
        ),
    )

    print("Step 3: Starting model-driven build loop...")
    loop = BuildLoop(
        client=client,
        shell=shell,
        working_directory=source_dir,
        log_dir=config.root_path / config.log_dir,
        max_steps=config.max_steps,
        completion_token=config.completion_token,
        command_timeout=config.command_timeout,
        on_step=_print_step,
    )
    outcome = loop.run(conversation)
    if not outcome.completed:
        raise StepBudgetExhausted(config.max_steps)

    print(f"Step 4: Moving build output to {release_dir.name}/...")
    output_dir = locate_static_output(source_dir, excluded=_excluded_dirs(config))
    if output_dir is None:
        raise ArtifactNotFoundError(f"Unable to locate build output directory under {source_dir}.")
    destination = publish_release(output_dir, release_dir)
    print(f"Release ready at: {destination}")

    print("Step 5: Requesting nginx rewrite rule...")
    rule = request_rewrite_rule(client, system_message)
    rule_path = write_rewrite_rule(release_dir, rule)
    print(f"Rewrite rule saved at: {rule_path}")
    return destination


def _excluded_dirs(config: AppConfig) -> frozenset[str]:
    return DEFAULT_EXCLUDED_DIRS | {
        config.task_dir_name,
        config.source_dir_name,
        config.release_dir_name,
        Path(config.log_dir).name,
    }


def _print_step(step: int, command: str) -> None:
    print(f"\n[Step {step}] model command: {command}")


if __name__ == "__main__":
    raise SystemExit(main())
