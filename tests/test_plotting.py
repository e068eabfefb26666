import matplotlib.pyplot as plt
import pandas as pd
import pytest
from rfx import interpret, plotting
from rfx.errors import RenderError
from rfx.results import InterpretationResult

SMALL_SETTINGS = {
    "permutation_importance": {"n_repeats": 2},
    "interaction": {"grid_resolution": 5},
    "partial_dependence": {"feature": "x1", "grid_resolution": 5},
    "ale": {"feature": "x1", "grid_size": 5},
    "surrogate_tree": {"max_depth": 2},
    "lime": {"instance": 0, "k": 3, "num_samples": 300},
    "shapley": {"instance": 0},
}


@pytest.mark.parametrize("method", sorted(SMALL_SETTINGS))
def test_every_method_renders(forest_predictor, tmp_path, method):
    result = interpret.evaluate(method, forest_predictor, SMALL_SETTINGS[method])
    path = plotting.export_plot(result, tmp_path / plotting.FILE_NAMES[method])
    assert path.exists()
    assert path.stat().st_size > 0


def test_figure_size_follows_dimensions(forest_predictor, tmp_path):
    result = interpret.evaluate("surrogate_tree", forest_predictor, {"max_depth": 1})
    path = plotting.export_plot(result, tmp_path / "tree.png", width=6, height=4, dpi=50)
    image = plt.imread(path)
    assert image.shape[:2] == (200, 300)


def test_centered_partial_dependence_renders(additive_predictor, tmp_path):
    result = interpret.evaluate(
        "partial_dependence", additive_predictor, {"feature": "x2", "center": 0.0, "grid_resolution": 5}
    )
    assert plotting.export_plot(result, tmp_path / "pdp.png").exists()


def test_existing_file_is_replaced(forest_predictor, tmp_path):
    path = tmp_path / "lime.png"
    path.write_bytes(b"not an image")
    result = interpret.evaluate("lime", forest_predictor, SMALL_SETTINGS["lime"])
    plotting.export_plot(result, path)
    assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_empty_result_raises(tmp_path):
    result = InterpretationResult("lime", pd.DataFrame(columns=["feature", "weight"]))
    with pytest.raises(RenderError):
        plotting.export_plot(result, tmp_path / "empty.png")
    assert not (tmp_path / "empty.png").exists()


def test_unknown_method_raises(tmp_path):
    result = InterpretationResult("mystery", pd.DataFrame({"feature": ["a"], "value": [1.0]}))
    with pytest.raises(RenderError):
        plotting.export_plot(result, tmp_path / "mystery.png")


def test_missing_directory_raises(forest_predictor, tmp_path):
    result = interpret.evaluate("interaction", forest_predictor, SMALL_SETTINGS["interaction"])
    with pytest.raises(RenderError):
        plotting.export_plot(result, tmp_path / "no_such_dir" / "interaction.png")


def test_unsupported_format_raises(forest_predictor, tmp_path):
    result = interpret.evaluate("surrogate_tree", forest_predictor, {"max_depth": 1})
    with pytest.raises(RenderError):
        plotting.export_plot(result, tmp_path / "tree.xyz")


def test_result_missing_columns_raises(tmp_path):
    result = InterpretationResult("interaction", pd.DataFrame({"feature": ["a"], "value": [1.0]}))
    with pytest.raises(RenderError):
        plotting.export_plot(result, tmp_path / "interaction.png")
