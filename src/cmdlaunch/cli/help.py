"""Global and per-command help text.

Both renderers return Rich-markup strings; printing is the dispatcher's
job.  Global help reads only display metadata (cached or loaded with
bounded concurrency) and never a full command definition, so listing
commands never imports a handler's dependencies.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from cmdlaunch.cli.console import escape
from cmdlaunch.core.models import ArgDefinition, ArgType, CommandDefinition, CommandNode
from cmdlaunch.core.registry import Registry
from cmdlaunch.exceptions import CommandLoadError, LauncherError
from cmdlaunch.utils.concurrency import bounded_gather

logger = logging.getLogger(__name__)

METADATA_CONCURRENCY: int = 5
NO_DESCRIPTION = "No description available"


@dataclass(frozen=True, slots=True)
class CommandSummary:
    """One line pair of a command listing."""

    path: tuple[str, ...]
    aliases: tuple[str, ...] = ()
    description: str = ""
    error: str | None = None
    """Load failure, shown in place of the description."""

    @property
    def label(self) -> str:
        return " ".join(self.path)


def _error_text(exc: LauncherError) -> str:
    if isinstance(exc, CommandLoadError):
        return f"{exc} ({type(exc.cause).__name__}: {exc.cause})"
    return str(exc)


async def summarize(registry: Registry, node: CommandNode) -> CommandSummary:
    """Load *node*'s metadata and turn it into a :class:`CommandSummary`.

    A metadata load failure becomes the summary's ``error`` instead of
    propagating.
    """
    path = registry.display_path(node.name)
    try:
        meta = await node.load_metadata()
    except LauncherError as exc:
        logger.debug("Metadata for %r failed to load: %s", node.name, exc)
        return CommandSummary(path=path, error=_error_text(exc))
    return CommandSummary(path=path, aliases=meta.aliases, description=meta.description)


async def summarize_all(
    registry: Registry,
    nodes: Iterable[CommandNode],
    *,
    concurrency: int = METADATA_CONCURRENCY,
) -> list[CommandSummary]:
    """Summaries of *nodes*, sorted by their display path."""
    summaries = await bounded_gather(
        list(nodes),
        lambda node: summarize(registry, node),
        concurrency=concurrency,
    )
    return sorted(summaries, key=lambda summary: summary.path)


def _format_summary(summary: CommandSummary) -> str:
    aliases = f"[dim] ({escape(', '.join(summary.aliases))})[/dim]" if summary.aliases else ""
    if summary.error is not None:
        detail = f"[red]{escape(summary.error)}[/red]"
    else:
        detail = f"[dim]{escape(summary.description or NO_DESCRIPTION)}[/dim]"
    return f"  [cyan]{escape(summary.label)}[/cyan]{aliases}\n      {detail}"


# ---------------------------------------------------------------------------
# Global help
# ---------------------------------------------------------------------------

async def render_global_help(
    registry: Registry,
    *,
    prog: str,
    version: str | None = None,
    concurrency: int = METADATA_CONCURRENCY,
) -> str:
    """List every discovered command with its aliases and description."""
    summaries = await summarize_all(
        registry, registry.hierarchy.values(), concurrency=concurrency
    )

    lines: list[str] = []
    if version:
        lines.append(f"[bold cyan]{escape(prog)}[/bold cyan] [dim]{escape(version)}[/dim]\n")
    lines.append("[bold]Usage:[/bold]")
    lines.append(f"  [green]{escape(prog)}[/green] <command> [dim]{escape('[options]')}[/dim]")
    lines.append("\n[bold]Available commands:[/bold]\n")
    if summaries:
        lines.extend(_format_summary(summary) for summary in summaries)
    else:
        lines.append("  [dim](none)[/dim]")
    lines.append(f'\n[dim]Use "{escape(prog)} <command> --help" for command-specific help[/dim]')
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Per-command help
# ---------------------------------------------------------------------------

def _render_value(value: object) -> str:
    return f'"{value}"' if isinstance(value, str) else str(value)


def _flag_label(name: str, definition: ArgDefinition) -> str:
    label = f"[cyan]--{escape(name)}[/cyan]"
    if definition.aliases:
        aliases = ", ".join(
            f"-{alias}" if len(alias) == 1 else f"--{alias}" for alias in definition.aliases
        )
        label += f"[dim] ({escape(aliases)})[/dim]"
    return label


def _argument_block(label: str, definition: ArgDefinition) -> str:
    if definition.required:
        label += "[red]*[/red]"
    if definition.type is not ArgType.BOOLEAN:
        label += f" [dim]<{definition.type.value}>[/dim]"

    detail = escape(definition.description)
    if definition.default is not None:
        detail += f"[dim] (default: {escape(_render_value(definition.default))})[/dim]"
    if definition.allowed:
        allowed = ", ".join(_render_value(value) for value in definition.allowed)
        detail += f"[dim] (allowed: {escape(allowed)})[/dim]"
    return f"  {label}\n      {detail}".rstrip()


def render_command_help(
    definition: CommandDefinition,
    *,
    prog: str,
    chain: Sequence[str] = (),
    subcommands: Sequence[CommandSummary] = (),
) -> str:
    """Usage, arguments, options, subcommands and examples for one command.

    *chain* is the invoked command path (``("deploy", "staging")``);
    the command's own name is used when empty.
    """
    meta = definition.meta
    schema = definition.args
    invocation = " ".join((prog, *(chain or (meta.name,))))

    positional = [(name, arg) for name, arg in schema.items() if arg.positional]
    flags = [(name, arg) for name, arg in schema.items() if not arg.positional]

    lines = [
        f"\n[bold cyan]{escape(meta.name)}[/bold cyan] - "
        f"[dim]{escape(meta.description or NO_DESCRIPTION)}[/dim]"
    ]
    if meta.version:
        lines.append(f"[yellow]Version:[/yellow] {escape(meta.version)}")
    if meta.aliases:
        lines.append(f"[yellow]Aliases:[/yellow] {escape(', '.join(meta.aliases))}")

    usage = [f"[green]{escape(invocation)}[/green]"]
    for name, arg in positional:
        placeholder = name.upper() if arg.required else f"[{name.upper()}]"
        usage.append(escape(placeholder))
    if subcommands:
        usage.append(f"[dim]{escape('[subcommand]')}[/dim]")
    usage.append(f"[dim]{escape('[options]')}[/dim]")
    lines.append("\n[bold]Usage:[/bold]")
    lines.append("  " + " ".join(usage))

    if positional:
        lines.append("\n[bold]Arguments:[/bold]")
        lines.extend(
            _argument_block(f"[cyan]{escape(name.upper())}[/cyan]", arg)
            for name, arg in positional
        )

    if flags:
        lines.append("\n[bold]Options:[/bold]")
        lines.extend(_argument_block(_flag_label(name, arg), arg) for name, arg in flags)

    if any(arg.required for arg in schema.values()):
        lines.append("\n[red]*[/red] = [dim]required[/dim]")

    if subcommands:
        lines.append("\n[bold]Subcommands:[/bold]")
        lines.extend(
            _format_summary(
                CommandSummary(
                    path=summary.path[-1:],
                    aliases=summary.aliases,
                    description=summary.description,
                    error=summary.error,
                )
            )
            for summary in subcommands
        )

    if meta.examples:
        lines.append("\n[bold]Examples:[/bold]")
        lines.extend(f"  [cyan]{escape(example)}[/cyan]" for example in meta.examples)

    return "\n".join(lines)
