"""catalog-spine command line interface (typer + rich)."""

from catalog_spine.cli.app import app

__all__ = ["app"]
