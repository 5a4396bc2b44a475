"""CLI entry point for compliance run commands."""

import argparse
import asyncio
import logging
import sys

from rich.console import Console

from kube_compliance.client import (
    DEFAULT_NAMESPACE,
    ComplianceClient,
    ComplianceClientConfig,
    load_client_config,
)
from kube_compliance.errors import ClientConfigError, ComplianceError, describe_error
from kube_compliance.results import show_results, show_status

log = logging.getLogger("kube_compliance")


async def run_results(config_json: str | None, namespace: str, console: Console) -> int:
    """Show the results of the compliance tests and return exit code."""
    try:
        config = _load_config(config_json)
        async with ComplianceClient.from_config(config) as client:
            await show_results(client, namespace, console)
    except ComplianceError as err:
        log.error("%s", describe_error(err))
        return 1
    return 0


async def run_status(
    config_json: str | None,
    namespace: str,
    console: Console,
    *,
    wait: bool = False,
    timeout: float = 1800,
    poll_interval: float = 30,
) -> int:
    """Show the status of the compliance run and return exit code."""
    try:
        config = _load_config(config_json)
        async with ComplianceClient.from_config(config) as client:
            await show_status(
                client,
                namespace,
                console,
                wait=wait,
                timeout=timeout,
                poll_interval=poll_interval,
            )
    except ComplianceError as err:
        log.error("%s", describe_error(err))
        return 1
    return 0


def _load_config(config_json: str | None) -> ComplianceClientConfig:
    try:
        return load_client_config(config_json)
    except ValueError as err:
        raise ClientConfigError("could not create the compliance client") from err


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog="kube-compliance",
        description="Inspect Kubernetes compliance test runs",
    )
    parser.add_argument(
        "--namespace",
        default=DEFAULT_NAMESPACE,
        help=f"Namespace of the compliance run (default: {DEFAULT_NAMESPACE})",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="JSON configuration for the compliance client",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "results",
        help="Shows the results of compliance tests",
        description="Shows the results of the compliance tests",
    )

    status = subparsers.add_parser(
        "status",
        help="Shows the status of the compliance run",
        description="Shows the status of the compliance run",
    )
    status.add_argument(
        "--wait",
        action="store_true",
        help="Wait for the compliance run to complete or fail",
    )
    status.add_argument(
        "--timeout",
        type=float,
        default=1800,
        help="Seconds to wait for the run with --wait (default: 1800)",
    )
    status.add_argument(
        "--poll-interval",
        type=float,
        default=30,
        help="Seconds between status checks with --wait (default: 30)",
    )

    return parser


def main() -> None:
    """CLI entry point."""
    args = build_parser().parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    console = Console()
    if args.command == "results":
        exit_code = asyncio.run(
            run_results(
                config_json=args.config,
                namespace=args.namespace,
                console=console,
            )
        )
    else:
        exit_code = asyncio.run(
            run_status(
                config_json=args.config,
                namespace=args.namespace,
                console=console,
                wait=args.wait,
                timeout=args.timeout,
                poll_interval=args.poll_interval,
            )
        )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
