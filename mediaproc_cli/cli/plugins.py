"""mediaproc plugin commands - add, remove, update, list and browse plugins."""

import asyncio
from typing import Optional

import typer
from rich.console import Console

from mediaproc_cli.cli.error_handler import ValidationError, handle_errors
from mediaproc_cli.cli.output import print_key_value, print_list, print_table
from mediaproc_cli.cli.progress import ProvisioningProgress, spinner, status_message
from mediaproc_cli.engine import Engine, get_engine
from mediaproc_cli.plugins.installer import InstallScope
from mediaproc_cli.plugins.provisioning import ProvisioningRequest
from mediaproc_cli.plugins.registry import PACKAGE_PREFIX, Category

console = Console()

TYPE_LABELS = {
    "official": "[blue]★ official[/blue]",
    "community": "[green]community[/green]",
}

# Sample subcommands shown after `mediaproc add`
PLUGIN_EXAMPLES = {
    "image": ["resize photo.jpg -w 800", "convert image.png image.webp", "optimize photo.jpg"],
    "video": ["compress movie.mp4", "transcode video.avi video.mp4", "trim video.mp4 -s 00:00:10"],
    "audio": ["convert song.wav song.mp3", "normalize audio.mp3"],
    "document": ["compress report.pdf", "convert document.docx document.pdf"],
    "animation": ["gifify video.mp4 --fps 15", "optimize animation.gif"],
    "3d": ["optimize model.glb", "convert model.obj model.glb"],
    "metadata": ["inspect video.mp4", "strip image.jpg"],
}


def ensure_capability(
    engine: Engine,
    capability: str,
    scope: Optional[InstallScope] = None,
) -> ProvisioningRequest:
    """Install (if needed) and load a capability, showing progress."""
    from mediaproc_cli.main import is_quiet

    with ProvisioningProgress(quiet=is_quiet()) as progress:
        return asyncio.run(
            engine.provisioner.ensure(capability, scope=scope, on_transition=progress.update)
        )


def _scope_from_flags(global_install: bool, local_install: bool) -> Optional[InstallScope]:
    if global_install and local_install:
        raise ValidationError("--global and --local are mutually exclusive")
    if global_install:
        return InstallScope.GLOBAL
    if local_install:
        return InstallScope.LOCAL
    return None


@handle_errors
def add(
    ctx: typer.Context,
    plugin: str = typer.Argument(
        ...,
        help="Plugin short name (image, video, ...) or package id.",
    ),
    global_install: bool = typer.Option(
        False,
        "--global",
        "-g",
        help="Install for the current user instead of the active environment.",
    ),
    local_install: bool = typer.Option(
        False,
        "--local",
        "-l",
        help="Install into the active Python environment.",
    ),
) -> None:
    """Install and load a plugin.

    Example:
        mediaproc add image
        mediaproc add video --local
    """
    scope = _scope_from_flags(global_install, local_install)
    engine = get_engine(ctx)
    registry = engine.registry

    package_id = registry.resolve(plugin)
    entry = registry.get_entry(package_id)
    plugin_type = registry.plugin_type(package_id)

    print_key_value(
        {
            "Type": TYPE_LABELS[plugin_type],
            "Description": entry.description if entry else None,
            "System requirements": list(entry.system_requirements) if entry else None,
        },
        title=package_id,
    )

    request = ensure_capability(engine, plugin, scope=scope)

    command_name = registry.command_name(package_id)
    if request.history == [request.current_state]:
        status_message(f"Plugin {package_id} is already loaded", "success")
    else:
        status_message(f"Plugin {package_id} is ready", "success")
    console.print(f"[dim]Use:[/dim] mediaproc {command_name} <command>")

    examples = PLUGIN_EXAMPLES.get(entry.short_name if entry else command_name, [])
    if examples:
        console.print()
        print_list([f"mediaproc {command_name} {e}" for e in examples], title="Example commands:")


@handle_errors
def remove(
    ctx: typer.Context,
    plugin: str = typer.Argument(
        ...,
        help="Plugin short name or package id.",
    ),
    global_install: bool = typer.Option(
        False,
        "--global",
        "-g",
        help="Remove a user-wide installation.",
    ),
    local_install: bool = typer.Option(
        False,
        "--local",
        "-l",
        help="Remove from the active Python environment.",
    ),
) -> None:
    """Uninstall a plugin.

    Example:
        mediaproc remove video
    """
    scope = _scope_from_flags(global_install, local_install)
    engine = get_engine(ctx)

    with spinner(f"Removing {plugin}..."):
        package_id = asyncio.run(engine.provisioner.remove(plugin, scope=scope))

    status_message(f"Removed {package_id}", "success")


@handle_errors
def update(
    ctx: typer.Context,
    plugin: Optional[str] = typer.Argument(
        None,
        help="Plugin short name or package id. Updates every installed plugin if omitted.",
    ),
    global_install: bool = typer.Option(
        False,
        "--global",
        "-g",
        help="Update a user-wide installation.",
    ),
    local_install: bool = typer.Option(
        False,
        "--local",
        "-l",
        help="Update in the active Python environment.",
    ),
    version: Optional[str] = typer.Option(
        None,
        "--version",
        "-v",
        help="Install this exact version (e.g. 1.2.3, latest).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Show package manager output on failure.",
    ),
) -> None:
    """Update plugins to the latest or a given version.

    Example:
        mediaproc update
        mediaproc update image
        mediaproc update video --version 1.2.3
    """
    scope = _scope_from_flags(global_install, local_install)
    if version == "latest":
        version = None
    engine = get_engine(ctx)

    with spinner(f"Updating {plugin or 'installed plugins'}..."):
        updates = asyncio.run(engine.provisioner.update(plugin, scope=scope, version=version))

    if not updates:
        console.print("[yellow]No plugins installed[/yellow]")
        console.print("[dim]Install a plugin:[/dim] mediaproc add <name>")
        return

    for result in updates:
        old = result.old_version or "unknown"
        new = result.new_version or "unknown"
        if result.changed:
            status_message(f"{result.package_id} updated ({old} → {new})", "success")
        else:
            status_message(f"{result.package_id} is up to date ({new})", "success")
    console.print("[dim]Changes take effect the next time mediaproc runs[/dim]")


@handle_errors
def list_loaded(ctx: typer.Context) -> None:
    """List plugins loaded in this process.

    Example:
        mediaproc list
    """
    engine = get_engine(ctx)
    type_order = list(TYPE_LABELS)
    records = sorted(
        engine.runtime.records(),
        key=lambda r: type_order.index(engine.registry.plugin_type(r.package_id)),
    )

    if not records:
        console.print("[yellow]No plugins loaded yet[/yellow]")
        console.print("[dim]Get started by installing a plugin:[/dim]")
        for name in ("image", "video", "audio"):
            console.print(f"  [cyan]mediaproc add {name}[/cyan]")
        console.print("[dim]View all available plugins:[/dim] mediaproc plugins")
        return

    rows = [
        {
            "plugin": engine.registry.command_name(record.package_id),
            "package": record.package_id,
            "type": TYPE_LABELS[engine.registry.plugin_type(record.package_id)],
            "version": record.version or ("built-in" if record.is_builtin else "unknown"),
            "commands": ", ".join(record.commands),
        }
        for record in records
    ]
    print_table(
        rows,
        ["plugin", "package", "type", "version", "commands"],
        title=f"Loaded Plugins ({len(rows)} total)",
        column_styles={"plugin": "cyan", "version": "green"},
    )
    console.print("[dim]Install more:[/dim] mediaproc add <plugin>")
    console.print(f"[dim]Community plugins use the {PACKAGE_PREFIX}* naming convention[/dim]")


@handle_errors
def browse(
    ctx: typer.Context,
    category: Optional[Category] = typer.Option(
        None,
        "--category",
        "-c",
        help="Only show plugins in this category.",
        case_sensitive=False,
    ),
    search: Optional[str] = typer.Option(
        None,
        "--search",
        "-s",
        help="Only show plugins matching a keyword.",
    ),
) -> None:
    """Show the catalog of official plugins.

    Example:
        mediaproc plugins
        mediaproc plugins --category core
        mediaproc plugins --search pdf
    """
    engine = get_engine(ctx)
    registry = engine.registry
    matches = {e.package_id for e in registry.search(search)} if search else None

    shown = 0
    for cat, entries in registry.list_by_category().items():
        if category is not None and cat is not category:
            continue
        if matches is not None:
            entries = [e for e in entries if e.package_id in matches]
        if not entries:
            continue

        rows = []
        for entry in entries:
            if engine.runtime.is_loaded(entry.package_id):
                status = "[green]loaded[/green]"
            elif engine.loader.is_installed(entry.package_id):
                status = "[green]installed[/green]"
            else:
                status = "[dim]available[/dim]"
            rows.append(
                {
                    "name": entry.short_name,
                    "package": entry.package_id,
                    "status": status,
                    "description": entry.description,
                    "requires": ", ".join(entry.system_requirements),
                }
            )
        print_table(
            rows,
            ["name", "package", "status", "description", "requires"],
            title=f"{cat.value.title()} Plugins",
            column_styles={"name": "cyan"},
        )
        shown += len(rows)

    if shown == 0:
        console.print("[yellow]No plugins match.[/yellow]")
        return
    console.print("[dim]Install a plugin:[/dim] mediaproc add <name>")

