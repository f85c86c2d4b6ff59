"""
Command-line application for California local regression analysis.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import matplotlib
import typer

from ..core.config import get_config, initialize_config
from ..core.exceptions import LocalRegressionError
from ..core.logging_setup import setup_logging_from_config

logger = logging.getLogger(__name__)

app = typer.Typer(help="Local regression and interpolation of California precipitation and house prices")


def _prepare(config: Optional[str], verbose: bool, json_logs: bool) -> None:
    """Load configuration and start logging."""
    initialize_config(config)
    setup_logging_from_config(json_format=json_logs)
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        for handler in logging.getLogger().handlers:
            handler.setLevel(logging.DEBUG)
        logger.info("Verbose logging enabled")
    matplotlib.use('Agg')


def _run(name: str, workflow: Callable[[], Dict[str, Any]], output: Optional[str],
         figures: bool) -> None:
    """Run a workflow, export its results and map failures to exit code 1."""
    from ..reporting import OutputManager, export_analysis, export_figures

    start_time = datetime.now()
    logger.info(f"{name} analysis started at {start_time.strftime('%Y-%m-%d %H:%M:%S')}")

    try:
        results = workflow()
    except LocalRegressionError as e:
        logger.error(f"{name} analysis failed: {e}")
        raise typer.Exit(code=1)

    manager = OutputManager(output_dir=output, analysis_name=name)
    written = export_analysis(results, manager)
    if figures:
        export_figures(results, manager)

    execution_time = (datetime.now() - start_time).total_seconds()
    logger.info(f"{name} analysis completed in {execution_time:.2f} seconds")
    logger.info(f"- Results saved to: {manager.analysis_dir}")

    if not all(written.values()):
        raise typer.Exit(code=1)


@app.command()
def precipitation(
    config: Optional[str] = typer.Option(None, help='Configuration file path'),
    data: Optional[str] = typer.Option(None, help='Station CSV (overrides config)'),
    regions: Optional[str] = typer.Option(None, help='Region polygon file (overrides config)'),
    bandwidth: Optional[float] = typer.Option(None, help='Fixed GWR bandwidth; selected by cross-validation if omitted'),
    output: Optional[str] = typer.Option(None, help='Custom output directory'),
    figures: bool = typer.Option(True, help='Draw maps and charts'),
    verbose: bool = typer.Option(False, help='Enable verbose logging'),
    json_logs: bool = typer.Option(False, help='Write JSON-structured logs')
):
    """Global OLS and GWR of annual precipitation against altitude."""
    _prepare(config, verbose, json_logs)
    from ..analysis import run_precipitation_analysis

    _run('precipitation',
         lambda: run_precipitation_analysis(data, regions, gwr_overrides={'bandwidth': bandwidth}),
         output, figures)


@app.command()
def houses(
    config: Optional[str] = typer.Option(None, help='Configuration file path'),
    data: Optional[str] = typer.Option(None, help='Block-group CSV (overrides config)'),
    regions: Optional[str] = typer.Option(None, help='County polygon file (overrides config)'),
    radius: Optional[float] = typer.Option(None, help='Grid neighbourhood radius in metres'),
    min_observations: Optional[int] = typer.Option(None, help='Minimum observations per partition'),
    gwr: bool = typer.Option(True, help='Also fit GWR'),
    sample_size: Optional[int] = typer.Option(None, help='GWR sample size'),
    output: Optional[str] = typer.Option(None, help='Custom output directory'),
    figures: bool = typer.Option(True, help='Draw maps and charts'),
    verbose: bool = typer.Option(False, help='Enable verbose logging'),
    json_logs: bool = typer.Option(False, help='Write JSON-structured logs')
):
    """Global, per-county, per-grid-cell and GWR models of 1990 house values."""
    _prepare(config, verbose, json_logs)
    from ..analysis import run_house_price_analysis

    _run('houses',
         lambda: run_house_price_analysis(
             data, regions,
             local_overrides={'radius': radius, 'min_observations': min_observations},
             gwr_overrides={'sample_size': sample_size},
             include_gwr=gwr
         ),
         output, figures)


@app.command()
def interpolate(
    config: Optional[str] = typer.Option(None, help='Configuration file path'),
    data: Optional[str] = typer.Option(None, help='Station CSV (overrides config)'),
    regions: Optional[str] = typer.Option(None, help='Region polygon file used as mask'),
    variable: Optional[str] = typer.Option(None, help='Station column to interpolate'),
    method: Optional[str] = typer.Option(None, help='idw, kriging or tps'),
    cell_size: Optional[float] = typer.Option(None, help='Grid cell size in metres'),
    output: Optional[str] = typer.Option(None, help='Custom output directory'),
    figures: bool = typer.Option(True, help='Draw maps and charts'),
    verbose: bool = typer.Option(False, help='Enable verbose logging'),
    json_logs: bool = typer.Option(False, help='Write JSON-structured logs')
):
    """Interpolate a station variable onto a grid."""
    _prepare(config, verbose, json_logs)
    from ..analysis import run_interpolation

    _run('interpolation',
         lambda: run_interpolation(data, regions, variable,
                                   overrides={'method': method, 'cell_size': cell_size}),
         output, figures)


@app.command()
def show_config(
    config: Optional[str] = typer.Option(None, help='Configuration file path')
):
    """Print the effective configuration as YAML."""
    import yaml

    initialize_config(config)
    typer.echo(yaml.dump(get_config().config, default_flow_style=False))


def main():
    """Entry point for the california-gwr console script."""
    app()


if __name__ == "__main__":
    main()
