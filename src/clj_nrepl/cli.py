"""clj-nrepl CLI.

A thin command-line host over NreplClient, mostly for scripting and for
poking at a running REPL.

Usage:
    clj-nrepl --port 7888 eval "(+ 1 2)"      # Evaluate code
    clj-nrepl --port 7888 complete ma         # Complete a symbol prefix
    clj-nrepl --port 7888 info map --ns user  # Symbol documentation
    clj-nrepl --port 7888 sessions            # List open sessions
    clj-nrepl --port 7888 ping                # Check the endpoint
    clj-nrepl --port 7888 test my.ns-test     # Run tests

The endpoint can also come from NREPL_HOST / NREPL_PORT.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Coroutine, Mapping
from typing import Any, TypeVar

import click

from .client import NreplClient, create_client
from .connection import ConnectionInfo
from .errors import NreplError
from .protocol.responses import EvalSummary, Response

T = TypeVar("T")

# Output format options
FORMAT_TEXT = "text"
FORMAT_JSON = "json"

format_option = click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TEXT, FORMAT_JSON]),
    default=FORMAT_TEXT,
    help="Output format",
)


class ClickNotifier:
    """Reports connection errors on stderr."""

    def notify_error(self, message: str) -> None:
        click.echo(f"Error: {message}", err=True)


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a client coroutine, turning client errors into CLI errors."""
    try:
        return asyncio.run(coro)
    except (NreplError, OSError) as e:
        raise click.ClickException(str(e) or e.__class__.__name__) from e


def _dump(responses: list[Response]) -> str:
    return json.dumps([r.to_dict() for r in responses], indent=2, ensure_ascii=False, default=str)


@click.group()
@click.option("--host", envvar="NREPL_HOST", default="127.0.0.1", help="nREPL server host")
@click.option(
    "--port", envvar="NREPL_PORT", type=click.IntRange(1, 65535), help="nREPL server port"
)
@click.option(
    "--timeout",
    envvar="NREPL_TIMEOUT",
    type=float,
    default=None,
    help="Seconds to wait for each request (default: no limit)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log protocol traffic to stderr")
@click.pass_context
def main(
    ctx: click.Context,
    host: str,
    port: int | None,
    timeout: float | None,
    verbose: bool,
) -> None:
    """Talk to a running nREPL server."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.obj = {"host": host, "port": port, "timeout": timeout}


def _client(ctx: click.Context) -> NreplClient:
    if ctx.obj["port"] is None:
        raise click.UsageError("No nREPL port given. Use --port or set NREPL_PORT.")
    if "client" not in ctx.obj:
        ctx.obj["client"] = create_client(
            ctx.obj["host"], ctx.obj["port"], notifier=ClickNotifier(), timeout=ctx.obj["timeout"]
        )
    return ctx.obj["client"]


@main.command("eval")
@click.argument("code")
@click.option("--session", "-s", help="Parent session to clone from")
@format_option
@click.pass_context
def eval_command(ctx: click.Context, code: str, session: str | None, output_format: str) -> None:
    """Evaluate CODE and print its values.

    Output printed by the code goes to stdout, errors to stderr. Exits
    with status 1 if evaluation raised.

    Examples:

        clj-nrepl --port 7888 eval "(+ 1 2)"

        clj-nrepl --port 7888 eval "(println :hi)" --format json
    """
    responses = _run(_client(ctx).evaluate(code, session))

    if output_format == FORMAT_JSON:
        click.echo(_dump(responses))
        return

    summary = EvalSummary.from_responses(responses)
    if summary.out:
        click.echo(summary.out, nl=False)
    if summary.err:
        click.echo(summary.err, nl=False, err=True)
    for value in summary.values:
        click.echo(value)
    if summary.failed:
        click.echo(f"Exception: {summary.root_ex or summary.ex or 'unknown'}", err=True)
        ctx.exit(1)


@main.command()
@click.argument("symbol")
@click.option("--ns", help="Namespace to complete in")
@format_option
@click.pass_context
def complete(ctx: click.Context, symbol: str, ns: str | None, output_format: str) -> None:
    """List completions for SYMBOL."""
    response = _run(_client(ctx).complete(symbol, ns))

    if output_format == FORMAT_JSON:
        click.echo(_dump([response]))
        return

    for candidate in response.completions:
        if isinstance(candidate, Mapping):
            click.echo(candidate.get("candidate", ""))
        else:
            click.echo(candidate)


@main.command()
@click.argument("symbol")
@click.option("--ns", help="Namespace to resolve SYMBOL in")
@format_option
@click.pass_context
def info(ctx: click.Context, symbol: str, ns: str | None, output_format: str) -> None:
    """Show documentation and location of SYMBOL."""
    response = _run(_client(ctx).info(symbol, ns))

    if output_format == FORMAT_JSON:
        click.echo(_dump([response]))
        return

    if "no-info" in response.status or response.name is None:
        click.echo(f"No info for {symbol}", err=True)
        ctx.exit(1)

    name = f"{response.ns}/{response.name}" if response.ns else response.name
    click.echo(name)
    if response.file:
        click.echo(f"{response.file}:{response.line or 0}:{response.column or 0}")
    if response.doc:
        click.echo(f"\n{response.doc}")


@main.command()
@format_option
@click.pass_context
def sessions(ctx: click.Context, output_format: str) -> None:
    """List sessions open on the server."""
    ids = _run(_client(ctx).list_sessions())

    if output_format == FORMAT_JSON:
        click.echo(json.dumps(ids, indent=2))
        return

    if not ids:
        click.echo("No sessions found.")
        return
    for session_id in ids:
        click.echo(session_id)
    click.echo(f"\nTotal: {len(ids)} session(s)")


@main.command()
@click.pass_context
def ping(ctx: click.Context) -> None:
    """Check that the endpoint answers as an nREPL server."""
    client = _client(ctx)
    connection = ConnectionInfo(host=ctx.obj["host"], port=ctx.obj["port"])
    _run(client.check_connection(connection))
    click.echo(f"nREPL server at {connection} is reachable")


@main.command("test")
@click.argument("namespace", required=False)
@format_option
@click.pass_context
def test_command(ctx: click.Context, namespace: str | None, output_format: str) -> None:
    """Run tests in NAMESPACE, or in every loaded namespace."""
    responses = _run(_client(ctx).run_tests(namespace))

    if output_format == FORMAT_JSON:
        click.echo(_dump(responses))
        return

    summary = EvalSummary.from_responses(responses)
    if summary.out:
        click.echo(summary.out, nl=False)
    for response in responses:
        report = response.get("summary")
        if isinstance(report, Mapping):
            click.echo(
                f"Ran {report.get('test', 0)} test(s): "
                f"{report.get('fail', 0)} failure(s), {report.get('error', 0)} error(s)"
            )
    click.echo(f"Status: {', '.join(summary.status) or 'unknown'}")


if __name__ == "__main__":
    main()
