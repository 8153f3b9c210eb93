"""Command-line interface for the street view generator."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import get_config
from .errors import GeocodingError
from .models.generation import Error, GenerationState, RealWorldLocation, Success
from .models.geo import FantasyPoint, GeoPoint
from .models.settings import AspectRatio, GenerationStyle, ImageSize, MapMode
from .services.geocoding_service import GeocodingService
from .services.map_session import MapSession
from .services.prompt_service import PromptBuilder
from .services.settings_service import SettingsService
from .services.storage_service import timestamped_filename
from .utils.geo_utils import (
    bearing_degrees,
    compass_name_16,
    fantasy_bearing_degrees,
    format_direction,
    normalize_degrees,
)

console = Console()

STYLE_CHOICES = [s.value for s in GenerationStyle]
ASPECT_CHOICES = [a.value for a in AspectRatio]
SIZE_CHOICES = [s.value for s in ImageSize]


def _load_session() -> MapSession:
    config = get_config()
    config.ensure_directories()
    return MapSession.from_config(config)


def _settings_service(session: MapSession) -> SettingsService:
    return SettingsService(session.settings, session.fantasy_storage)


def _report(state: GenerationState, session: MapSession, output: Optional[str], save: bool) -> None:
    """Print the outcome of a generation and write the image."""
    if isinstance(state, Error):
        console.print(f"[red]Error:[/red] {state.message}")
        raise SystemExit(1)
    if not isinstance(state, Success):
        console.print("[yellow]Generation did not complete[/yellow]")
        raise SystemExit(1)

    output_path = Path(output) if output else Path.cwd() / timestamped_filename("StreetGen")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(state.image_bytes)
    console.print(f"\n[green]Success![/green] Street view saved to: {output_path}")
    console.print(f"[dim]Model: {state.model} | Generation time: {state.generation_time:.1f}s[/dim]")

    if save:
        result, path = asyncio.run(session.save_current_image())
        if path is not None:
            console.print(f"[dim]Saved to gallery:[/dim] {path}")
        else:
            console.print(f"[yellow]Saving to gallery failed ({result.value if result else 'no image'})[/yellow]")


def _run_generation(
    session: MapSession,
    source_image: Optional[bytes],
    custom_prompt: Optional[str],
    satellite: bool,
) -> GenerationState:
    async def run() -> GenerationState:
        try:
            return await session.generate(source_image, custom_prompt, satellite)
        finally:
            await session.aclose()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Calling Gemini (this may take 30-60 seconds)...", total=None)
        state = asyncio.run(run())
        progress.update(task, completed=True, description=f"[green]{state.name}")
    return state


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def main(verbose: bool):
    """StreetGen - Generate street-level views from a point on a map."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s - %(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


# =============================================================================
# Direction helpers
# =============================================================================


@main.command()
@click.argument("degrees", type=float)
def compass(degrees: float):
    """Show the 16-point compass name of a direction."""
    direction = normalize_degrees(degrees)
    console.print(f"[bold]{format_direction(direction)}[/bold] {compass_name_16(direction)}")


@main.command()
@click.argument("start", nargs=2, type=float)
@click.argument("end", nargs=2, type=float)
@click.option("--fantasy", is_flag=True, help="Treat points as image fractions (x y) instead of lat lon")
def bearing(start: tuple[float, float], end: tuple[float, float], fantasy: bool):
    """Bearing from START to END (each given as two numbers)."""
    try:
        if fantasy:
            degrees = fantasy_bearing_degrees(
                FantasyPoint(x_percent=start[0], y_percent=start[1]),
                FantasyPoint(x_percent=end[0], y_percent=end[1]),
            )
        else:
            degrees = bearing_degrees(
                GeoPoint(latitude=start[0], longitude=start[1]),
                GeoPoint(latitude=end[0], longitude=end[1]),
            )
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    console.print(f"[bold]{format_direction(degrees)}[/bold] {compass_name_16(degrees)}")


@main.command()
@click.option("--lat", type=float, required=True, help="Latitude of the viewer")
@click.option("--lon", type=float, required=True, help="Longitude of the viewer")
@click.option("--direction", "-d", type=int, required=True, help="Viewing direction in degrees")
@click.option("--style", "-s", type=click.Choice(STYLE_CHOICES), default=None, help="Style (defaults to settings)")
@click.option("--custom-prompt", "-p", default=None, help="Extra instruction for the model")
@click.option("--satellite", is_flag=True, help="The map capture shows satellite imagery")
def prompt(lat: float, lon: float, direction: int, style: Optional[str], custom_prompt: Optional[str], satellite: bool):
    """Print the prompt that would be sent for a real-world view."""
    try:
        point = GeoPoint(latitude=lat, longitude=lon)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    session = _load_session()
    location = RealWorldLocation(point=point, satellite=satellite)
    text = PromptBuilder().build(
        location,
        direction,
        GenerationStyle(style) if style else session.settings.get_style(),
        custom_style_text=session.settings.get_selected_custom_style_text(),
        custom_prompt=custom_prompt,
    )
    console.print(text, markup=False, highlight=False)


# =============================================================================
# Generation
# =============================================================================


@main.command()
@click.argument("map_image", type=click.Path(exists=True, dir_okay=False))
@click.option("--lat", type=float, required=True, help="Latitude of the viewer")
@click.option("--lon", type=float, required=True, help="Longitude of the viewer")
@click.option("--direction", "-d", type=float, required=True, help="Viewing direction in degrees")
@click.option("--custom-prompt", "-p", default=None, help="Extra instruction for the model")
@click.option("--satellite", is_flag=True, help="MAP_IMAGE shows satellite imagery")
@click.option("--output", "-o", type=click.Path(), help="Output file path")
@click.option("--save", is_flag=True, help="Also save to the gallery")
def generate(
    map_image: str,
    lat: float,
    lon: float,
    direction: float,
    custom_prompt: Optional[str],
    satellite: bool,
    output: Optional[str],
    save: bool,
):
    """Generate a street view from a capture of the map around a point."""
    try:
        point = GeoPoint(latitude=lat, longitude=lon)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    session = _load_session()
    session.set_map_mode(MapMode.REAL_WORLD)
    session.place_point(point)
    committed = session.set_direction(direction)

    console.print(f"[bold]Location:[/bold] {lat:.6f}, {lon:.6f}")
    console.print(f"[bold]Direction:[/bold] {format_direction(committed)}")
    console.print(f"[bold]Style:[/bold] {session.settings.get_style().name.title()}")

    state = _run_generation(session, Path(map_image).read_bytes(), custom_prompt, satellite)
    _report(state, session, output, save)


@main.command()
@click.option("--x", "x_percent", type=float, required=True, help="Horizontal position (0-1)")
@click.option("--y", "y_percent", type=float, required=True, help="Vertical position (0-1)")
@click.option("--direction", "-d", type=float, required=True, help="Viewing direction in degrees")
@click.option("--map", "map_id", default=None, help="Fantasy map id (defaults to the active map)")
@click.option("--custom-prompt", "-p", default=None, help="Extra instruction for the model")
@click.option("--output", "-o", type=click.Path(), help="Output file path")
@click.option("--save", is_flag=True, help="Also save to the gallery")
def fantasy(
    x_percent: float,
    y_percent: float,
    direction: float,
    map_id: Optional[str],
    custom_prompt: Optional[str],
    output: Optional[str],
    save: bool,
):
    """Generate a street view inside a fantasy map."""
    session = _load_session()

    try:
        if map_id:
            asyncio.run(session.activate_fantasy_map(map_id))
        else:
            asyncio.run(session.reload_active_fantasy_map())
    except KeyError:
        console.print(f"[red]Error:[/red] Fantasy map not found: {map_id}")
        raise SystemExit(1)

    fantasy_map = session.active_fantasy_map.value
    if fantasy_map is None or not session.fantasy_map_ready:
        console.print("[red]Error:[/red] No fantasy map selected. Add one with 'streetgen maps add'.")
        raise SystemExit(1)

    session.set_map_mode(MapMode.FANTASY)
    try:
        session.place_point(FantasyPoint(x_percent=x_percent, y_percent=y_percent))
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
    committed = session.set_direction(direction)

    console.print(f"[bold]World:[/bold] {fantasy_map.name}")
    console.print(f"[bold]Position:[/bold] {x_percent * 100:.1f}% x {y_percent * 100:.1f}%")
    console.print(f"[bold]Direction:[/bold] {format_direction(committed)}")

    state = _run_generation(session, None, custom_prompt, False)
    _report(state, session, output, save)


@main.command()
@click.argument("query")
def search(query: str):
    """Look up the coordinates of a place."""
    config = get_config()
    geocoder = GeocodingService(config.nominatim_url, config.user_agent)

    async def run():
        try:
            return await geocoder.search(query)
        finally:
            await geocoder.aclose()

    try:
        location = asyncio.run(run())
    except GeocodingError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    if location is None:
        console.print(f"[yellow]Location not found:[/yellow] {query}")
        raise SystemExit(1)
    console.print(f"[bold]{query}:[/bold] {location.latitude:.6f}, {location.longitude:.6f}")


@main.command()
@click.option("--host", default="127.0.0.1", help="Interface to bind")
@click.option("--port", "-p", default=8000, help="Port to listen on")
def serve(host: str, port: int):
    """Run the HTTP API."""
    import uvicorn

    from .api.main import create_app

    console.print(f"[bold]StreetGen API[/bold] on http://{host}:{port} (docs at /docs)")
    uvicorn.run(create_app(), host=host, port=port)


# =============================================================================
# Settings
# =============================================================================


@main.group()
def config():
    """Show or change settings."""


@config.command("show")
def config_show():
    """Show the current settings."""
    session = _load_session()
    repo = session.settings
    app_config = get_config()

    table = Table(title="StreetGen Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("API Key", "set" if repo.has_api_key() else "[red]not set[/red]")
    table.add_row("Style", repo.get_style().name.title())
    custom = repo.get_selected_custom_style_id()
    table.add_row("Custom Style", custom or "-")
    table.add_row("Aspect Ratio", repo.get_aspect_ratio().label)
    table.add_row("Image Size", repo.get_image_size().label)
    table.add_row("Map Mode", repo.get_map_mode().value)
    active = repo.get_active_fantasy_map()
    table.add_row("Fantasy Map", active.name if active else "-")
    table.add_row("Model", app_config.gemini_model)
    table.add_row("Settings File", str(app_config.settings_file))
    table.add_row("Gallery", str(app_config.pictures_dir))

    console.print(table)


@config.command("set-key")
@click.argument("api_key")
def config_set_key(api_key: str):
    """Store the Gemini API key."""
    session = _load_session()
    repo = session.settings
    status = _settings_service(session).save_settings(
        api_key,
        repo.get_style(),
        repo.get_selected_custom_style_id(),
        repo.get_aspect_ratio(),
        repo.get_image_size(),
    )
    if not status.success:
        console.print(f"[red]Error:[/red] {status.message}")
        raise SystemExit(1)
    console.print("[green]API key saved[/green]")


@config.command("set")
@click.option("--style", "-s", type=click.Choice(STYLE_CHOICES), default=None, help="Generation style")
@click.option("--custom-style", default=None, help="Id of the custom style used by the 'custom' style")
@click.option("--aspect", "-a", type=click.Choice(ASPECT_CHOICES), default=None, help="Aspect ratio")
@click.option("--size", type=click.Choice(SIZE_CHOICES), default=None, help="Image size")
def config_set(style: Optional[str], custom_style: Optional[str], aspect: Optional[str], size: Optional[str]):
    """Change generation settings."""
    session = _load_session()
    repo = session.settings

    if custom_style and repo.get_custom_style_by_id(custom_style) is None:
        console.print(f"[red]Error:[/red] Custom style not found: {custom_style}")
        raise SystemExit(1)

    if style:
        repo.save_style(GenerationStyle(style))
    if custom_style:
        repo.save_selected_custom_style_id(custom_style)
    if aspect:
        repo.save_aspect_ratio(AspectRatio(aspect))
    if size:
        repo.save_image_size(ImageSize(size))

    console.print("[green]Settings saved[/green]")


# =============================================================================
# Custom styles
# =============================================================================


@main.group()
def styles():
    """Manage custom styles."""


@styles.command("list")
def styles_list():
    """List custom styles."""
    repo = _load_session().settings
    custom_styles = repo.get_custom_styles()
    if not custom_styles:
        console.print("[dim]No custom styles[/dim]")
        return

    selected = repo.get_selected_custom_style_id()
    table = Table()
    table.add_column("Id", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Prompt")
    for style in custom_styles:
        marker = " *" if style.id == selected else ""
        table.add_row(style.id, style.name + marker, style.prompt)
    console.print(table)


@styles.command("add")
@click.argument("name")
@click.argument("style_prompt")
@click.option("--select", is_flag=True, help="Use this style for generation")
def styles_add(name: str, style_prompt: str, select: bool):
    """Add a custom style."""
    session = _load_session()
    style = _settings_service(session).save_custom_style(name, style_prompt)
    if style is None:
        console.print("[red]Error:[/red] Name and prompt are required")
        raise SystemExit(1)

    if select:
        session.settings.save_style(GenerationStyle.CUSTOM)
        session.settings.save_selected_custom_style_id(style.id)
    console.print(f"[green]Added style[/green] {style.name} [dim]({style.id})[/dim]")


@styles.command("delete")
@click.argument("style_id")
def styles_delete(style_id: str):
    """Delete a custom style."""
    session = _load_session()
    if session.settings.get_custom_style_by_id(style_id) is None:
        console.print(f"[red]Error:[/red] Custom style not found: {style_id}")
        raise SystemExit(1)
    _settings_service(session).delete_custom_style(style_id)
    console.print(f"[green]Deleted style[/green] {style_id}")


# =============================================================================
# Fantasy maps
# =============================================================================


@main.group()
def maps():
    """Manage fantasy maps."""


@maps.command("list")
def maps_list():
    """List fantasy maps."""
    repo = _load_session().settings
    fantasy_maps = repo.get_fantasy_maps()
    if not fantasy_maps:
        console.print("[dim]No fantasy maps[/dim]")
        return

    active_id = repo.get_active_fantasy_map_id()
    table = Table()
    table.add_column("Id", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("World Context")
    for fantasy_map in fantasy_maps:
        marker = " *" if fantasy_map.id == active_id else ""
        table.add_row(fantasy_map.id, fantasy_map.name + marker, fantasy_map.world_context or "-")
    console.print(table)


@maps.command("add")
@click.argument("name")
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@click.option("--context", "-c", default="", help="World context (lore) for the prompt")
@click.option("--activate", is_flag=True, help="Make this the active map")
def maps_add(name: str, image: str, context: str, activate: bool):
    """Import a fantasy map image."""
    session = _load_session()
    fantasy_map = _settings_service(session).save_fantasy_map(name, context, image_source=image)
    if fantasy_map is None:
        console.print("[red]Error:[/red] A name and a readable image are required")
        raise SystemExit(1)

    if activate:
        asyncio.run(session.activate_fantasy_map(fantasy_map.id))
    console.print(f"[green]Added map[/green] {fantasy_map.name} [dim]({fantasy_map.id})[/dim]")


@maps.command("delete")
@click.argument("map_id")
def maps_delete(map_id: str):
    """Delete a fantasy map and its stored image."""
    session = _load_session()
    if session.settings.get_fantasy_map_by_id(map_id) is None:
        console.print(f"[red]Error:[/red] Fantasy map not found: {map_id}")
        raise SystemExit(1)
    _settings_service(session).delete_fantasy_map(map_id)
    console.print(f"[green]Deleted map[/green] {map_id}")


@maps.command("activate")
@click.argument("map_id", required=False)
def maps_activate(map_id: Optional[str]):
    """Make a fantasy map active (no argument deactivates)."""
    session = _load_session()
    try:
        fantasy_map = asyncio.run(session.activate_fantasy_map(map_id))
    except KeyError:
        console.print(f"[red]Error:[/red] Fantasy map not found: {map_id}")
        raise SystemExit(1)

    if fantasy_map is None:
        console.print("[green]No fantasy map active[/green]")
    else:
        console.print(f"[green]Active map:[/green] {fantasy_map.name}")


if __name__ == "__main__":
    main()
