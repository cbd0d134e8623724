"""CLI interface for Shopify theme sync."""

import logging
import time
from typing import Any, Optional

import click

from .config import get_config_path, load_targets
from .exceptions import ThemeSyncConfigError
from .models import ShopTarget
from .output import OutputFormatter
from .sync import SyncRunner
from .utils import mask_secret

logger = logging.getLogger(__name__)


def _load_targets(ctx: Any, shops: tuple[str, ...]) -> list[ShopTarget]:
    """Load configured shops, reporting invalid ones and applying --shop."""
    out: OutputFormatter = ctx.obj["out"]
    try:
        targets, errors = load_targets(ctx.obj["config_path"])
    except ThemeSyncConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    for name, error in errors:
        out.error(f"An error occurred in shop: {name}. {error}")

    if shops:
        wanted = set(shops)
        unknown = wanted - {target.name for target in targets}
        for name in sorted(unknown):
            out.warning(f"Shop not found or invalid: {name}")
        targets = [target for target in targets if target.name in wanted]

    return targets


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    envvar="PYTHEMESYNC_CONFIG",
    type=click.Path(dir_okay=False),
    help="Path to config.json (default: ~/.config/pythemesync/config.json)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pythemesync")
@click.pass_context
def main(
    ctx: Any,
    config_path: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """PyThemeSync - Keep Shopify themes in sync with a local directory."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pythemesync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--shop",
    "-s",
    "shops",
    multiple=True,
    help="Only watch this shop (can be given multiple times)",
)
@click.option(
    "--native",
    is_flag=True,
    help="Use native filesystem events instead of polling",
)
@click.pass_context
def watch(ctx: Any, shops: tuple[str, ...], native: bool) -> None:
    """Watch shop directories and sync every change to Shopify.

    Runs until interrupted with Ctrl+C.
    """
    out: OutputFormatter = ctx.obj["out"]
    targets = _load_targets(ctx, shops)

    if not targets:
        out.warning("No shops to watch. :-(")
        ctx.exit(1)

    runner = SyncRunner(targets, output=out, native=native)
    if runner.start() == 0:
        out.error("None of the configured shops could be watched.")
        ctx.exit(1)

    try:
        while runner.is_running():
            time.sleep(0.5)
    except KeyboardInterrupt:
        out.info("\nStopped watching.")
    finally:
        runner.stop()


@main.command(name="config")
@click.option("--shop", "-s", "shops", multiple=True, help="Only show this shop")
@click.pass_context
def show_config(ctx: Any, shops: tuple[str, ...]) -> None:
    """Show the effective configuration of every shop."""
    out: OutputFormatter = ctx.obj["out"]
    targets = _load_targets(ctx, shops)

    if out.json_output:
        out.output_json(
            [
                {
                    "name": target.name,
                    "url": target.base_url,
                    "apiKey": mask_secret(target.api_key),
                    "password": mask_secret(target.password),
                    "directory": str(target.directory),
                    "options": {
                        "compress": {"js": target.options.compress_js},
                        "ignoreDotFiles": target.options.ignore_dot_files,
                        "uploadOriginal": target.options.upload_original,
                        "interval": target.options.interval,
                        "blacklist": list(target.options.blacklist),
                        "validDirectories": list(target.options.valid_directories),
                        "maxWorkers": target.options.max_workers,
                    },
                }
                for target in targets
            ]
        )
        return

    out.info(f"Config file: {get_config_path(ctx.obj['config_path'])}")
    for target in targets:
        options = target.options
        out.print_summary(
            target.name,
            [
                ("URL", target.base_url),
                ("API key", mask_secret(target.api_key)),
                ("Password", mask_secret(target.password)),
                ("Directory", str(target.directory)),
                ("Compress JS/JSON", "yes" if options.compress_js else "no"),
                ("Ignore dot files", "yes" if options.ignore_dot_files else "no"),
                ("Upload original", "yes" if options.upload_original else "no"),
                ("Interval", f"{options.interval} ms"),
                ("Blacklist", ", ".join(options.blacklist)),
                ("Theme directories", ", ".join(options.valid_directories)),
                ("Workers", str(options.max_workers)),
            ],
        )


if __name__ == "__main__":
    main()
