from pathlib import Path
from typing import Union
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from sklearn.tree import plot_tree
from .errors import RenderError
from .logger_setup import setup_logger
from .results import InterpretationResult

logger = setup_logger("rfx_log.txt", to_console=True)

FILE_NAMES = {
    "permutation_importance": "permutation_importance.png",
    "interaction": "interaction.png",
    "partial_dependence": "partial_dependence.png",
    "ale": "ale.png",
    "surrogate_tree": "surrogate_tree.png",
    "lime": "lime.png",
    "shapley": "shapley.png",
}

BAR_COLOR = "#3a5e8c"
ICE_COLOR = "#10a53d"
MAX_BARS = 15


def _barh(ax, labels, values, xlabel, xerr=None):
    y_pos = np.arange(len(labels))
    colors = [BAR_COLOR if v >= 0 else "#b2182b" for v in values]
    ax.barh(y_pos, values, xerr=xerr, color=colors, alpha=0.85, height=0.7)
    ax.set_yticks(y_pos)
    ax.set_yticklabels(labels, fontsize=7)
    ax.invert_yaxis()
    ax.set_xlabel(xlabel)
    ax.grid(True, alpha=0.3, axis="x")


def _plot_permutation_importance(ax, result):
    top = result.table.head(MAX_BARS)
    # asymmetric error bars from the percentile band
    xerr = np.vstack(
        [
            np.clip(top["importance"] - top["lower"], 0, None),
            np.clip(top["upper"] - top["importance"], 0, None),
        ]
    )
    _barh(ax, top["feature"], top["importance"], f"Increase in {result.details.get('loss', 'loss')}", xerr)
    ax.set_title("Permutation feature importance")


def _plot_interaction(ax, result):
    top = result.table.head(MAX_BARS)
    _barh(ax, top["feature"], top["interaction"], "Overall interaction strength (H)")
    ax.set_title("Interaction strength")


def _plot_partial_dependence(ax, result):
    feature = result.details["feature"]
    grid = result.table[feature].to_numpy()
    for curve in result.details["individual"]:
        ax.plot(grid, curve, color=ICE_COLOR, alpha=0.1, linewidth=0.5)
    ax.plot(grid, result.table["average"], color=BAR_COLOR, linewidth=3, label="PDP")
    ax.set_xlabel(feature)
    centered_at = result.details.get("centered_at")
    if centered_at is None:
        ax.set_ylabel("Predicted outcome")
    else:
        ax.set_ylabel(f"Prediction relative to {feature} = {centered_at}")
    ax.set_title(f"PDP and ICE curves for {feature}")
    ax.legend(loc="best")


def _plot_ale(ax, result):
    feature = result.details["feature"]
    ax.plot(result.table[feature], result.table["eff"], color=BAR_COLOR, linewidth=3, marker="o", markersize=3)
    ax.axhline(0.0, color="#666666", linewidth=1)
    ax.set_xlabel(feature)
    ax.set_ylabel("Accumulated local effect")
    ax.set_title(f"ALE for {feature}")


def _plot_surrogate_tree(ax, result):
    tree = result.details["tree"]
    plot_tree(
        tree,
        feature_names=result.details["feature_names"],
        filled=True,
        rounded=True,
        fontsize=7,
        ax=ax,
    )
    ax.set_title(f"Surrogate tree (R^2 to model = {result.details['r_squared']:.2f})")


def _plot_lime(ax, result):
    _barh(ax, result.table["feature"], result.table["weight"], "Local weight")
    ax.set_title(
        f"LIME for row {result.details['instance_label']} "
        f"(prediction {result.details['prediction']:.3f})"
    )


def _plot_shapley(ax, result):
    top = result.table.head(MAX_BARS)
    labels = [f"{feat} = {value:.3g}" for feat, value in zip(top["feature"], top["value"])]
    _barh(ax, labels, top["phi"], "Shapley value")
    ax.set_title(
        f"Shapley values for row {result.details['instance_label']} "
        f"(base {result.details['base_value']:.3f})"
    )


RENDERERS = {
    "permutation_importance": _plot_permutation_importance,
    "interaction": _plot_interaction,
    "partial_dependence": _plot_partial_dependence,
    "ale": _plot_ale,
    "surrogate_tree": _plot_surrogate_tree,
    "lime": _plot_lime,
    "shapley": _plot_shapley,
}


def export_plot(
    result: InterpretationResult,
    path: Union[str, Path],
    width: float = 6.0,
    height: float = 6.0,
    dpi: int = 100,
) -> Path:
    """
    Renders an interpretation result to a static image file, replacing any file at path.

    The output directory is not created here; a missing directory counts as an
    unwritable path.

    :param result: Result to render.
    :param path: Output image path; the extension selects the format.
    :param width: Figure width in inches.
    :param height: Figure height in inches.
    :param dpi: Resolution in dots per inch.

    :raises RenderError: If the result is empty, has no renderer or lacks its columns, the format is
        not supported, or the file cannot be written.

    :return: The written path.
    """
    path = Path(path)
    if result is None or result.is_empty:
        logger.error("Cannot render an empty interpretation result.")
        raise RenderError("Cannot render an empty interpretation result.")
    if result.method not in RENDERERS:
        logger.error(f"No renderer for method '{result.method}'.")
        raise RenderError(f"No renderer for method '{result.method}'.")

    fig, ax = plt.subplots(figsize=(width, height))
    try:
        RENDERERS[result.method](ax, result)
        fig.tight_layout()
        fig.savefig(path, dpi=dpi)
    except OSError as exc:
        logger.error(f"Could not write {path}: {exc}")
        raise RenderError(f"Could not write {path}: {exc}") from exc
    except (ValueError, KeyError) as exc:
        # unsupported file format, or a table without the renderer's columns
        logger.error(f"Could not render {result.method} to {path}: {exc!r}")
        raise RenderError(f"Could not render {result.method} to {path}: {exc!r}") from exc
    finally:
        plt.close(fig)

    logger.info(f"Saved {path}")
    return path
