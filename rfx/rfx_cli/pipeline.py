import click
from ..config import load_config
from ..core import ModelInterpreter
from ..errors import PipelineError
from ..interpret import RANKING_COLUMNS
from ..logger_setup import redirect_log_file, setup_logger
from ..printer import colour_printer

logger = setup_logger("rfx_log.txt", to_console=True)


def run_pipeline(interpreter: ModelInterpreter) -> ModelInterpreter:
    """Runs every stage of the pipeline on an interpreter, logging progress."""
    config = interpreter.config
    logger.info("=== Random Forest Interpretation Pipeline ===")

    logger.info("[1/7] Loading data...")
    interpreter.load_data()

    logger.info("[2/7] Filtering features and incomplete rows...")
    interpreter.filter_features()

    logger.info("[3/7] Splitting data into training and testing sets...")
    interpreter.split_data()

    logger.info("[4/7] Cross-validated grid search for the forest...")
    interpreter.train_model()
    logger.info("✔ Model trained successfully.")

    logger.info("[5/7] Wrapping the model and held-out data...")
    interpreter.build_predictor()

    logger.info("[6/7] Running interpretation methods...")
    results = []
    for i, method in enumerate(config.methods, 1):
        logger.info(f"  ({i}/{len(config.methods)}) {method}")
        result = interpreter.interpret(method)
        if method in RANKING_COLUMNS:
            logger.info(f"=== {method} ranking ===")
            interpreter.display_ranking(result)
        results.append(result)

    logger.info(f"[7/7] Rendering {len(results)} figure(s) to {config.output_dir}...")
    for result in results:
        interpreter.export_plot(result)

    interpreter.current_stage = None
    logger.info("Pipeline completed successfully!")
    return interpreter


def _abort(stage: str, exc) -> None:
    logger.error(f"Pipeline aborted during '{stage}' stage: {exc}")
    colour_printer(f"Pipeline aborted during '{stage}' stage: {exc}", fg="red", bold=True)
    raise SystemExit(1)


@click.command()
@click.option(
    "--config",
    "config_path",
    default="rfx_configuration.yaml",
    show_default=True,
    type=click.Path(dir_okay=False),
    help="YAML file with the pipeline configuration.",
)
def pipeline(config_path: str):
    """Load, filter, split, train, interpret and plot in one pass.

    Figures written before a failing stage are left in place.
    """
    try:
        config = load_config(config_path)
    except PipelineError as exc:
        _abort("config", exc)
    except Exception as exc:
        logger.exception("Unexpected error while loading the configuration")
        _abort("config", f"{type(exc).__name__}: {exc}")

    redirect_log_file(config.log_file)
    interpreter = ModelInterpreter(config)
    try:
        run_pipeline(interpreter)
    except PipelineError as exc:
        if interpreter.figures:
            logger.warning(
                f"Figures written before the failure were left in place: {sorted(interpreter.figures)}"
            )
        _abort(interpreter.current_stage or exc.stage, exc)
    except Exception as exc:
        logger.exception("Unexpected error in the pipeline")
        if interpreter.figures:
            logger.warning(
                f"Figures written before the failure were left in place: {sorted(interpreter.figures)}"
            )
        _abort(interpreter.current_stage or "pipeline", f"{type(exc).__name__}: {exc}")

    colour_printer(
        f"Wrote {len(interpreter.figures)} figure(s) to {config.output_dir}", fg="green"
    )


if __name__ == "__main__":
    pipeline()
