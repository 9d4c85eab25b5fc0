"""CLI entry point for mzid2pin.

The converted document is written to standard output, so all logging goes to
standard error.
"""

from __future__ import annotations

from typing import Any, BinaryIO, Dict, List, Optional, TYPE_CHECKING
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from mzid2pin.exceptions import ConversionError
from mzid2pin.features.sequence_features import Enzyme

if TYPE_CHECKING:
    from omegaconf import DictConfig

# Logging setup
logger = logging.getLogger(__name__)
package_logger = logging.getLogger("mzid2pin")
package_logger.setLevel(logging.INFO)
# Only the RichHandler on stderr; stdout carries the document
package_logger.propagate = False
if not package_logger.handlers:
    package_logger.addHandler(RichHandler(console=Console(stderr=True)))


# Typer CLI setup
app = typer.Typer(
    name="mzid2pin",
    help="""Convert mzIdentML search results into percolator input.""",
    rich_markup_mode="rich",
)

# Config command group
config_app = typer.Typer(
    name="config",
    help="Configuration utilities for inspecting resolved settings.",
    rich_markup_mode="rich",
)
app.add_typer(config_app)


def print_config(cfg: DictConfig) -> None:
    """Print configuration with colour-coded keys.

    Args:
        cfg: OmegaConf configuration object to print
    """
    from mzid2pin.utils.config_formatter import ConfigFormatter

    ConfigFormatter().print_config(cfg)


def compose_config(
    overrides: Optional[List[str]] = None,
    settings: Optional[Dict[str, Any]] = None,
    config_dir: Optional[str] = None,
) -> DictConfig:
    """Compose the conversion configuration.

    Args:
        overrides: Hydra override strings, e.g. `features.ptm=true`.
        settings: Values from command line options, keyed by dotted config key.
            They take precedence over `overrides`.
        config_dir: Optional directory of configs layered over the packaged ones.

    Returns:
        DictConfig: The resolved configuration.
    """
    from hydra import compose, initialize_config_dir
    from omegaconf import OmegaConf

    from mzid2pin.utils.config_path import get_primary_config_dir

    with initialize_config_dir(
        config_dir=str(get_primary_config_dir(config_dir)),
        version_base="1.3",
        job_name="mzid2pin_convert",
    ):
        cfg = compose(config_name="convert", overrides=overrides or [])

    for key, value in (settings or {}).items():
        OmegaConf.update(cfg, key, value, merge=False)
    return cfg


def run_conversion(cfg: DictConfig, output: Optional[BinaryIO] = None) -> int:
    """Run the conversion described by a configuration.

    Args:
        cfg: The resolved configuration.
        output: Destination of the document. Defaults to standard output.

    Returns:
        int: The number of scans written.
    """
    from hydra.utils import instantiate

    from mzid2pin.conversion.converter import MzIdentMLConverter
    from mzid2pin.datasets.scan_store import ScanIdentifierMap, SqliteScanStore
    from mzid2pin.io.pin_writer import PercolatorInWriter

    options = instantiate(cfg.features)
    output = output if output is not None else sys.stdout.buffer

    with SqliteScanStore(cfg.store_path, scan_ids=ScanIdentifierMap()) as store:
        converter = MzIdentMLConverter(options, store)
        return converter.convert(
            list(cfg.target_files),
            list(cfg.decoy_files),
            PercolatorInWriter(output),
        )


def convert_entry_point(
    overrides: Optional[List[str]] = None,
    settings: Optional[Dict[str, Any]] = None,
    config_dir: Optional[str] = None,
    execute: bool = True,
) -> None:
    """The conversion pipeline entry point.

    Args:
        overrides: Optional list of config overrides.
        settings: Values from command line options, keyed by dotted config key.
        config_dir: Optional custom config directory.
        execute: If False, only print the configuration and return without executing the pipeline.
    """
    cfg = compose_config(overrides, settings, config_dir)

    if not execute:
        print_config(cfg)
        return

    logger.info("Starting conversion.")
    n_scans = run_conversion(cfg)
    logger.info(f"Conversion completed successfully: {n_scans} scans.")


def collect_settings(
    target_files: Optional[List[Path]] = None,
    decoy_files: Optional[List[Path]] = None,
    enzyme: Optional[Enzyme] = None,
    ptm: Optional[bool] = None,
    pngasef: Optional[bool] = None,
    aa_freq: Optional[bool] = None,
    isotope_correction: Optional[bool] = None,
    store_path: Optional[Path] = None,
) -> Dict[str, Any]:
    """Map the command line options that were given to config keys."""
    settings: Dict[str, Any] = {}
    if target_files:
        settings["target_files"] = [str(path) for path in target_files]
    if decoy_files:
        settings["decoy_files"] = [str(path) for path in decoy_files]
    if enzyme is not None:
        settings["features.enzyme"] = Enzyme(enzyme).value
    for key, value in (
        ("features.ptm", ptm),
        ("features.pngasef", pngasef),
        ("features.aa_freq", aa_freq),
        ("features.isotope_correction", isotope_correction),
    ):
        if value is not None:
            settings[key] = value
    if store_path is not None:
        settings["store_path"] = str(store_path)
    return settings


@app.command(
    name="convert",
    help=(
        "Convert target and decoy mzIdentML files into one percolator input document.\n\n"
        "Spectra found in several files are merged into one scan. The document is "
        "written to standard output.\n\n"
        "[bold cyan]Quick start:[/bold cyan]\n"
        "  [dim]mzid2pin convert -t target.mzid -d decoy.mzid > out.pin.xml[/dim]\n\n"
        "[bold cyan]Override parameters:[/bold cyan]\n"
        "  [dim]mzid2pin convert -t target.mzid -e chymotrypsin --aa-freq[/dim]\n"
        "  [dim]mzid2pin convert -t target.mzid features.isotope_correction=true[/dim]  # Hydra override\n\n"
        "[bold cyan]Configuration files to customise:[/bold cyan]\n"
        "  • configs/convert.yaml - Feature switches, store location, input files"
    ),
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def convert(
    ctx: typer.Context,
    target_file: Optional[List[Path]] = typer.Option(
        None, "--target-file", "-t", help="Target search result (repeatable)."
    ),
    decoy_file: Optional[List[Path]] = typer.Option(
        None, "--decoy-file", "-d", help="Decoy search result (repeatable)."
    ),
    enzyme: Optional[Enzyme] = typer.Option(
        None, "--enzyme", "-e", help="Cleavage rule for the enzymatic features."
    ),
    ptm: Optional[bool] = typer.Option(
        None, "--ptm/--no-ptm", help="Add the modification count feature."
    ),
    pngasef: Optional[bool] = typer.Option(
        None, "--pngasef/--no-pngasef", help="Add the N-glycosylation sequon feature."
    ),
    aa_freq: Optional[bool] = typer.Option(
        None, "--aa-freq/--no-aa-freq", help="Add amino acid frequency features."
    ),
    isotope_correction: Optional[bool] = typer.Option(
        None,
        "--isotope-correction/--no-isotope-correction",
        help="Remove isotope errors from the mass difference feature.",
    ),
    store_path: Optional[Path] = typer.Option(
        None, "--store-path", "-s", help="File for intermediate results."
    ),
    config_dir: Optional[Path] = typer.Option(
        None, "--config-dir", help="Directory of configs overriding the packaged ones."
    ),
) -> None:
    """Runs the conversion; extra arguments are passed to Hydra as overrides."""
    overrides = ctx.args if ctx.args else None
    settings = collect_settings(
        target_files=target_file,
        decoy_files=decoy_file,
        enzyme=enzyme,
        ptm=ptm,
        pngasef=pngasef,
        aa_freq=aa_freq,
        isotope_correction=isotope_correction,
        store_path=store_path,
    )
    try:
        convert_entry_point(
            overrides, settings, str(config_dir) if config_dir else None
        )
    except (ConversionError, OSError) as exc:
        logger.error(f"Conversion failed: {exc}")
        raise typer.Exit(code=1) from exc


@config_app.command(
    name="convert",
    help=(
        "Display the resolved conversion configuration without running it.\n\n"
        "[bold cyan]Usage:[/bold cyan]\n"
        "  [dim]mzid2pin config convert[/dim]  # Show default config\n"
        "  [dim]mzid2pin config convert features.enzyme=elastase[/dim]  # Check override application"
    ),
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def config_convert(
    ctx: typer.Context,
    config_dir: Optional[Path] = typer.Option(
        None, "--config-dir", help="Directory of configs overriding the packaged ones."
    ),
) -> None:
    """Display the resolved conversion configuration."""
    overrides = ctx.args if ctx.args else None
    convert_entry_point(
        overrides, config_dir=str(config_dir) if config_dir else None, execute=False
    )


if __name__ == "__main__":
    app()
