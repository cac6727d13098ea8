"""
Main CLI entry point for the AMP-ML pipeline.

Provides subcommands:
  - amp run: Fit the AMP pipeline on a labeled observation table
  - amp score: Apply a saved AMP model to new observations
"""

import click

from amp_ml import __version__
from amp_ml.exceptions import AMPPipelineError


@click.group()
@click.version_option(version=__version__, prog_name="amp")
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv)",
)
@click.pass_context
def cli(ctx, verbose):
    """
    AMP-ML: Aggregate Marker Panel scoring for spatial feature maps

    Ensemble feature selection, consensus weighting and cutpoint-anchored
    score normalization for per-pixel feature vectors.
    """
    from amp_ml.utils.random import apply_seed_global

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    # Apply SEED_GLOBAL if set (for reproducibility debugging)
    seed_applied = apply_seed_global()
    if seed_applied is not None:
        ctx.obj["seed_global"] = seed_applied


@cli.command("run")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to YAML configuration file",
)
@click.option(
    "--infile",
    type=click.Path(exists=True),
    default=None,
    help="Observation table (CSV or Parquet): sample_id, x, y, label, feature columns",
)
@click.option(
    "--outdir",
    type=click.Path(),
    default=None,
    help="Base output directory (default: results/)",
)
@click.option(
    "--run-id",
    type=str,
    default=None,
    help="Run identifier (default: timestamp)",
)
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Random seed for the sample split",
)
@click.option(
    "--train-frac",
    type=float,
    default=None,
    help="Fraction of samples used for training (0-1)",
)
@click.option(
    "--n-jobs",
    type=int,
    default=None,
    help="Number of selectors run concurrently",
)
@click.option(
    "--override",
    multiple=True,
    help="Override config values (format: key=value or nested.key=value)",
)
@click.pass_context
def run(ctx, config, **kwargs):
    """Fit selectors, consensus weights and calibration; score held-out samples."""
    from amp_ml.cli.run_pipeline import run_pipeline_command

    cli_args = {k: v for k, v in kwargs.items() if k != "override"}
    overrides = list(kwargs.get("override", []))

    try:
        run_pipeline_command(
            config_file=config,
            cli_args=cli_args,
            overrides=overrides,
            verbose=ctx.obj.get("verbose", 0),
        )
    except AMPPipelineError as e:
        raise click.ClickException(f"[{e.stage}] {e}") from e
    except ValueError as e:
        raise click.ClickException(str(e)) from e


@cli.command("score")
@click.option(
    "--model",
    "model_path",
    type=click.Path(exists=True),
    required=True,
    help="Saved AMP model (amp_model.json)",
)
@click.option(
    "--infile",
    type=click.Path(exists=True),
    required=True,
    help="Observation table to score (CSV or Parquet)",
)
@click.option(
    "--outdir",
    type=click.Path(),
    default="scores",
    help="Output directory (default: scores/)",
)
@click.pass_context
def score(ctx, model_path, infile, outdir):
    """Score new observations with a saved AMP model (no refitting)."""
    from amp_ml.cli.score import run_score_command

    try:
        run_score_command(
            model_path=model_path,
            infile=infile,
            outdir=outdir,
            verbose=ctx.obj.get("verbose", 0),
        )
    except AMPPipelineError as e:
        raise click.ClickException(f"[{e.stage}] {e}") from e
    except ValueError as e:
        raise click.ClickException(str(e)) from e


def main():
    """Entry point for console script."""
    cli(obj={})


if __name__ == "__main__":
    main()
