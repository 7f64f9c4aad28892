"""
Create missing thumbnails for every record of a model.

The module holding the model must attach its ImageUploadBehavior on import.

Usage:
    python scripts/regenerate_thumbnails.py myapp.models:Photo image [--force] [--batch-size N]
"""
from __future__ import annotations

import argparse
import asyncio
import importlib

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.table import Table
from rich.panel import Panel

from upload_behaviors.behaviors import ImageUploadBehavior
from upload_behaviors.core.config import settings
from upload_behaviors.core.database import create_engine, create_session_factory, get_db_context
from upload_behaviors.core.exceptions import UploadException
from upload_behaviors.core.logging_config import configure_logging
from upload_behaviors.services.regeneration_service import regenerate_thumbnails

console = Console()


def load_model(spec: str) -> type:
    """Import ``package.module:ClassName``."""
    module_name, _, class_name = spec.partition(":")
    if not class_name:
        raise argparse.ArgumentTypeError(f"expected module:Class, got {spec!r}")
    return getattr(importlib.import_module(module_name), class_name)


async def run(model: type, attribute: str, force: bool, batch_size: int) -> dict:
    """Run the regeneration and show progress."""
    behavior = ImageUploadBehavior.get_instance(model, attribute)
    profiles = ", ".join(
        f"{name} {config['width']}x{config['height']}" for name, config in behavior.thumbs.items()
    )
    console.print(Panel.fit(
        "[bold cyan]Thumbnail Regeneration[/bold cyan]\n"
        f"Model: {model.__name__}.{attribute}\n"
        f"Mode: {'FORCE REGENERATE' if force else 'SKIP EXISTING'}\n"
        f"Profiles: {profiles}\n"
        f"Web root: {settings.web_root}",
        border_style="cyan"
    ))
    
    engine = create_engine()
    try:
        async with get_db_context(create_session_factory(engine)) as db:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console
            ) as progress:
                task = progress.add_task("Generating thumbnails...", total=None)
                
                def report(record, outcome):
                    if outcome == "errors":
                        console.print(f"[red]✗[/red] {record!r}")
                    progress.update(task, advance=1, description=f"Processing: {record!r}"[:60])
                
                stats = await regenerate_thumbnails(
                    db, model, attribute, force=force, batch_size=batch_size, progress=report
                )
    finally:
        await engine.dispose()
    
    display_summary(stats)
    return stats


def display_summary(stats: dict):
    """Display generation summary."""
    table = Table(title="\n[bold]Generation Summary[/bold]")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")
    
    table.add_row("Records with images", str(stats["total"]))
    table.add_row("Generated", str(stats["generated"]))
    table.add_row("Skipped (already exist)", str(stats["skipped"]))
    table.add_row("Errors", str(stats["errors"]), style="red" if stats["errors"] > 0 else "green")
    
    console.print(table)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate thumbnails for stored images")
    parser.add_argument("model", type=load_model, help="Model as module:Class")
    parser.add_argument("attribute", help="Image attribute name")
    parser.add_argument("--force", action="store_true", help="Regenerate existing thumbnails")
    parser.add_argument("--batch-size", type=int, default=100, help="Number of records per batch")
    
    args = parser.parse_args()
    configure_logging(settings)
    
    try:
        asyncio.run(run(args.model, args.attribute, args.force, args.batch_size))
    except UploadException as e:
        console.print(f"[red]{e.message}[/red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
