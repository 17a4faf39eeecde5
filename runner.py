"""Invocation entry points: trigger-payload handler and command line."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from agent import QAAgent
from config import AutoQAConfig, load_config
from definition_loader import discover_definitions, load_definition_file
from environment import EnvironmentReset, NoopEnvironmentReset, default_environment_reset
from exceptions import AutoQAError, DefinitionError, InvocationError
from run_types import RunRequest, RunStatus, TestDefinition, TestRun
from storage import JsonRunStore, RunStore


class RunInvoker:
    """Turns trigger payloads or definitions into isolated agent runs.

    The invoker resets the host at the start of every invocation, rejected
    ones included; agents it builds therefore skip their own reset.
    """

    def __init__(
        self,
        config: AutoQAConfig,
        logger: Optional[logging.Logger] = None,
        agent_factory: Optional[Callable[[], QAAgent]] = None,
        run_store: Optional[RunStore] = None,
        environment: Optional[EnvironmentReset] = None,
    ):
        self.config = config
        self.logger = logger or logging.getLogger("autoqa_runner")
        self.run_store = run_store or JsonRunStore(config.storage.runs_folder)
        self.environment = environment or default_environment_reset(config.cleanup, logger=self.logger)
        self.agent_factory = agent_factory or (
            lambda: QAAgent(
                config,
                run_store=self.run_store,
                environment=NoopEnvironmentReset(),
                logger=self.logger,
            )
        )

    async def handle_event(self, event: Mapping[str, Any]) -> Dict[str, Any]:
        """Reset the host, validate the trigger payload and run it; 400 when it is rejected."""
        self.environment.reset()
        try:
            request = RunRequest.from_event(event)
        except InvocationError as exc:
            self.logger.error(f"Rejected invocation: {exc.message}")
            return {"statusCode": 400, "error": exc.message}

        run = await self.agent_factory().run(request)
        return {"statusCode": 200, "testId": run.id, "status": run.status.value}

    async def run_definition(self, definition: TestDefinition, test_id: Optional[str] = None) -> TestRun:
        """Reset the host, create the RUNNING record for a definition, then run it."""
        self.environment.reset()
        request = definition.to_request(test_id or str(uuid.uuid4()))
        self.run_store.create(TestRun.start(request))
        self.logger.info(f"=== Running {definition.id} as {request.test_id} ===")
        return await self.agent_factory().run(request)

    async def run_sequential(self, definitions: Sequence[TestDefinition]) -> List[TestRun]:
        """Runs one after another; each one resets the host before launching."""
        results: List[TestRun] = []
        for i, definition in enumerate(definitions, 1):
            self.logger.info(f"Definition {i}/{len(definitions)}: {definition.id}")
            results.append(await self.run_definition(definition))
        return results


def handler(event: Mapping[str, Any], context: Any = None) -> Dict[str, Any]:
    """Synchronous entry point for function-as-a-service hosts."""
    invoker = RunInvoker(load_config())
    return asyncio.run(invoker.handle_event(event))


def _definitions_from_args(args: argparse.Namespace) -> List[TestDefinition]:
    if args.url or args.instructions or args.outcome:
        return [
            TestDefinition(
                id=args.test_id or "adhoc",
                url=args.url or "",
                instructions=args.instructions or "",
                desired_outcome=args.outcome or "",
            )
        ]

    definitions: List[TestDefinition] = []
    for path in args.definition or []:
        definitions.append(load_definition_file(Path(path)))
    if args.definitions_dir:
        definitions.extend(discover_definitions(Path(args.definitions_dir), only_ids=args.only))
    return definitions


def _print_summary(runs: Sequence[TestRun]) -> None:
    completed = sum(1 for r in runs if r.status is RunStatus.COMPLETED)
    failed = len(runs) - completed

    print("\n" + "=" * 60)
    print("RUN SUMMARY")
    print("=" * 60)
    print(f"Total:     {len(runs)}")
    print(f"Completed: {completed}")
    print(f"Failed:    {failed}")
    print("=" * 60)

    for run in runs:
        message = run.result or run.error or ""
        print(f"  - {run.id}: {run.status.value} ({len(run.history)} steps) {message[:80]}")


async def run_from_cli_args(args: argparse.Namespace, logger: logging.Logger) -> int:
    """Entry point shared by the CLI script."""
    try:
        definitions = _definitions_from_args(args)
    except DefinitionError as exc:
        logger.error(str(exc))
        return 1

    if not definitions:
        logger.warning("Nothing to run: pass --url/--instructions/--outcome or --definition")
        return 2

    config_path = Path(args.config) if args.config else None
    cli_overrides = {
        "browser": args.browser,
        "headful": args.headful or None,
        "max_steps": args.max_steps,
        "verbose": args.verbose or None,
        "runs_folder": args.runs_dir,
    }
    try:
        config = load_config(config_path, {k: v for k, v in cli_overrides.items() if v is not None})
    except Exception as exc:
        logger.error(f"Failed to load config: {exc}")
        return 1

    if config.verbose:
        logger.info(f"Browser: {config.browser.browser}, Headless: {config.browser.headless}")
        logger.info(f"Oracle: {config.oracle.model} @ {config.oracle.base_url}")
        logger.info(f"Max steps: {config.loop.max_steps}")

    invoker = RunInvoker(config=config, logger=logger)
    try:
        if args.test_id and len(definitions) == 1:
            runs = [await invoker.run_definition(definitions[0], test_id=args.test_id)]
        else:
            runs = await invoker.run_sequential(definitions)
    except InvocationError as exc:
        logger.error(f"Invalid run request: {exc.message}")
        return 1

    _print_summary(runs)
    return 1 if any(r.status is not RunStatus.COMPLETED for r in runs) else 0


def _build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Run autonomous functional tests driven by an LLM oracle.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --url example.com/login --instructions "Log in with test/test" --outcome "Dashboard is shown"
  %(prog)s --definition tests/login.yaml
  %(prog)s --definitions-dir definitions --only login --headful
        """,
    )

    adhoc_group = parser.add_argument_group("Ad-hoc Run")
    adhoc_group.add_argument("--url", help="Target URL (https:// is added when missing)")
    adhoc_group.add_argument("--instructions", help="Natural-language instructions")
    adhoc_group.add_argument("--outcome", help="Desired outcome that marks success")
    adhoc_group.add_argument("--test-id", help="Run identifier (default: adhoc)")

    definition_group = parser.add_argument_group("Definitions")
    definition_group.add_argument(
        "--definition",
        action="append",
        help="Definition YAML/JSON file (can be used multiple times)",
    )
    definition_group.add_argument(
        "--definitions-dir",
        help="Directory of definition files",
    )
    definition_group.add_argument(
        "--only",
        action="append",
        help="Only run this definition ID from --definitions-dir (can be used multiple times)",
    )

    browser_group = parser.add_argument_group("Browser Options")
    browser_group.add_argument(
        "--browser",
        choices=["chromium", "firefox", "webkit"],
        help="Browser engine to use (default: chromium)",
    )
    browser_group.add_argument(
        "--headful",
        action="store_true",
        help="Run browser in headful mode (show GUI)",
    )

    exec_group = parser.add_argument_group("Execution Options")
    exec_group.add_argument(
        "--max-steps",
        type=int,
        metavar="N",
        help="Step budget per run (default: 20)",
    )
    exec_group.add_argument(
        "--config",
        help="Path to config file (default: config.json if exists)",
    )

    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument(
        "--runs-dir",
        help="Directory for run records (default: runs)",
    )
    output_group.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )
    output_group.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-essential output",
    )

    return parser


def main() -> None:
    """Main entry point."""
    parser = _build_arg_parser()
    args = parser.parse_args()

    if args.quiet:
        log_level = logging.WARNING
    elif args.verbose:
        log_level = logging.DEBUG
    else:
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format="[%(levelname)s] %(message)s" if not args.verbose else "[%(levelname)s] %(name)s: %(message)s",
    )
    logger = logging.getLogger("autoqa_runner")

    try:
        exit_code = asyncio.run(run_from_cli_args(args, logger))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        exit_code = 130
    except AutoQAError as exc:
        logger.error(f"Error: {exc}")
        exit_code = 1
    except Exception as exc:
        logger.exception(f"Unexpected error: {exc}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
