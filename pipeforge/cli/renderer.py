"""Rich terminal renderer for resource graphs and assembly failures.

Color scheme
------------
- cyan      : source actions
- yellow    : build actions
- green     : deploy actions, allow statements
- bold red  : deny statements, errors
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pipeforge.core.errors import AssemblyError, AssemblyFailedError
from pipeforge.models.graph import ResourceGraph
from pipeforge.models.iam import Effect
from pipeforge.models.topology import ActionKind

# ---------------------------------------------------------------------------
# Kind / effect -> Rich style mapping
# ---------------------------------------------------------------------------

_ACTION_STYLES: dict[ActionKind, str] = {
    ActionKind.SOURCE: "cyan",
    ActionKind.BUILD: "yellow",
    ActionKind.DEPLOY: "green",
}

_EFFECT_STYLES: dict[Effect, str] = {
    Effect.ALLOW: "green",
    Effect.DENY: "bold red",
}


class GraphRenderer:
    """Renders ``ResourceGraph`` and ``AssemblyFailedError`` as Rich output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------

    def render_summary(self, graph: ResourceGraph) -> Panel:
        env = graph.environment
        lines = [
            f"[bold]Definition:[/bold]  {graph.name}",
            f"[bold]Target:[/bold]      {env.partition}/{env.region}/{env.account}",
            f"[bold]Storage:[/bold]     {len(graph.storage)}",
            f"[bold]Builds:[/bold]      {len(graph.builds)}",
            f"[bold]Functions:[/bold]   {len(graph.functions)}",
            f"[bold]Roles:[/bold]       {len(graph.roles)}",
            f"[bold]Stages:[/bold]      {len(graph.pipeline.stages) if graph.pipeline else 0}",
            "",
            f"[dim]{graph.fingerprint}[/dim]",
        ]
        return Panel(
            "\n".join(lines),
            title="[bold]Pipeforge[/bold]",
            border_style="green",
            padding=(1, 2),
        )

    def render_pipeline(self, graph: ResourceGraph) -> Table:
        """Stages and actions in execution order."""
        table = Table(title="Pipeline", show_header=True, header_style="bold cyan", expand=True)
        table.add_column("#", style="dim", width=3, justify="right")
        table.add_column("Stage", min_width=10)
        table.add_column("Action", min_width=14)
        table.add_column("Kind", justify="center")
        table.add_column("Inputs")
        table.add_column("Outputs")
        table.add_column("Logical ID", style="dim")

        if graph.pipeline is None:
            return table
        for stage in graph.pipeline.stages:
            for action in stage.actions:
                style = _ACTION_STYLES.get(action.kind, "")
                table.add_row(
                    str(stage.position),
                    stage.name,
                    action.name,
                    f"[{style}]{action.kind.value}[/{style}]",
                    ", ".join(action.inputs) or "[dim]-[/dim]",
                    ", ".join(action.outputs) or "[dim]-[/dim]",
                    action.logical_id,
                )
        return table

    def render_roles(self, graph: ResourceGraph) -> Table:
        """One row per statement, grouped by role."""
        table = Table(title="Roles", show_header=True, header_style="bold cyan", expand=True,
                      show_lines=True)
        table.add_column("Role", min_width=20)
        table.add_column("Trust", justify="center")
        table.add_column("Effect", justify="center")
        table.add_column("Actions")
        table.add_column("Resource", overflow="fold")

        for role in graph.roles:
            if not role.statements:
                table.add_row(role.logical_id, role.trust_principal.value, "[dim]-[/dim]",
                              "[dim]none[/dim]", "[dim]-[/dim]")
                continue
            for i, statement in enumerate(role.statements):
                style = _EFFECT_STYLES.get(statement.effect, "")
                table.add_row(
                    role.logical_id if i == 0 else "",
                    role.trust_principal.value if i == 0 else "",
                    f"[{style}]{statement.effect.value}[/{style}]",
                    "\n".join(statement.actions),
                    statement.resource,
                )
        return table

    def render_triggers(self, graph: ResourceGraph) -> Table:
        table = Table(title="Triggers", show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Build", min_width=14)
        table.add_column("Webhook", justify="center")
        table.add_column("Filters")

        for build in graph.builds:
            trigger = build.trigger
            filters = [
                " AND ".join(f"{f.type.value}={f.pattern}" for f in group)
                for group in trigger.filter_groups
            ]
            table.add_row(
                build.resource.logical_id,
                "[green]on[/green]" if trigger.webhook else "[dim]off[/dim]",
                "\n".join(filters) or "[dim]-[/dim]",
            )
        return table

    def render_graph(self, graph: ResourceGraph) -> Group:
        parts = [self.render_summary(graph)]
        if graph.pipeline is not None:
            parts.append(self.render_pipeline(graph))
        if graph.builds:
            parts.append(self.render_triggers(graph))
        parts.append(self.render_roles(graph))
        return Group(*parts)

    # ------------------------------------------------------------------
    # Failures
    # ------------------------------------------------------------------

    def render_errors(self, error: AssemblyError) -> Panel:
        """A table of every collected error, in discovery order."""
        errors = error.errors if isinstance(error, AssemblyFailedError) else [error]
        table = Table(show_header=True, header_style="bold red", expand=True)
        table.add_column("#", style="dim", width=3, justify="right")
        table.add_column("Type", style="bold")
        table.add_column("Location", style="cyan", overflow="fold")
        table.add_column("Message", overflow="fold")

        for i, err in enumerate(errors, start=1):
            table.add_row(str(i), type(err).__name__, err.location or "[dim]-[/dim]", err.message)

        return Panel(
            Group(table, Text(""), Text(f"{len(errors)} error(s)", style="bold red")),
            title="[bold red]Assembly failed[/bold red]",
            border_style="red",
        )

    # ------------------------------------------------------------------
    # Standalone print
    # ------------------------------------------------------------------

    def print_graph(self, graph: ResourceGraph) -> None:
        self.console.print(self.render_graph(graph))

    def print_errors(self, error: AssemblyError) -> None:
        self.console.print(self.render_errors(error))
