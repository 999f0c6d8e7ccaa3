import importlib
import os

import matplotlib
import pandas as pd
import pytest
from PIL import Image

from loan_explain import plots
from loan_explain.explain import (
    LocalExplanation,
    ShapleyExplanation,
    coefficient_table,
    forest_tree,
)
from loan_explain.models import FOREST, LOGISTIC


def _assert_png(path, out_dir, name):
    assert path == os.path.join(str(out_dir), name)
    with Image.open(path) as img:
        assert img.format == "PNG"
        assert img.size[0] > 100 and img.size[1] > 100


def test_plot_coefficients(models, split, tmp_path):
    coefs = coefficient_table(models[LOGISTIC], split.X_train.columns)
    _assert_png(plots.plot_coefficients(coefs, str(tmp_path)), tmp_path, "coefficients.png")


def test_plot_tree(models, split, tmp_path):
    path = plots.plot_tree(forest_tree(models[FOREST]), split.X_train.columns, str(tmp_path), max_depth=2)
    _assert_png(path, tmp_path, "forest_tree.png")


def test_plot_permutation_importance(tmp_path):
    tables = {
        "A": pd.DataFrame({"feature": ["x", "y"], "importance_mean": [0.1, 0.02], "importance_std": [0.01, 0.01]}),
        "B": pd.DataFrame({"feature": ["y", "x"], "importance_mean": [0.05, -0.01], "importance_std": [0.0, 0.02]}),
    }
    path = plots.plot_permutation_importance(tables, str(tmp_path))
    _assert_png(path, tmp_path, "permutation_importance.png")


def test_plot_partial_dependence(tmp_path):
    rows = []
    for model in ("A", "B"):
        for feature in ("duration", "age"):
            for i, v in enumerate((10.0, 20.0, 30.0)):
                rows.append({"model": model, "feature": feature, "value": v, "average": 0.2 + 0.05 * i})
    path = plots.plot_partial_dependence(pd.DataFrame(rows), str(tmp_path))
    _assert_png(path, tmp_path, "partial_dependence.png")


def test_plot_lime(tmp_path):
    exp = LocalExplanation(
        weights=pd.DataFrame({"condition": ["duration > 24.00", "balance_negative=1"], "weight": [0.12, 0.08]}),
        predicted_proba=0.61,
        local_proba=0.58,
        intercept=0.3,
    )
    _assert_png(plots.plot_lime(exp, str(tmp_path)), tmp_path, "lime.png")


@pytest.mark.parametrize("top_n", [2, 10])
def test_plot_shapley(tmp_path, top_n):
    values = pd.DataFrame(
        {
            "feature": ["duration", "age", "amount", "balance_low"],
            "value": [36, 22, 4000, 0],
            "shap_value": [0.10, 0.05, -0.03, 0.01],
        }
    )
    exp = ShapleyExplanation(values=values, base_value=0.3, predicted_proba=0.43)
    _assert_png(plots.plot_shapley(exp, str(tmp_path), top_n=top_n), tmp_path, "shapley.png")


def test_plot_table_creates_missing_dir(tmp_path):
    out_dir = tmp_path / "nested" / "figures"
    df = pd.DataFrame({"model": ["A"], "accuracy": [0.75], "roc_auc": [0.8]})
    path = plots.plot_table(df, str(out_dir), "performance.png", title="Performance")
    _assert_png(path, out_dir, "performance.png")


def test_import_keeps_callers_backend():
    matplotlib.use("svg")
    try:
        importlib.reload(plots)
        assert matplotlib.get_backend().lower() == "svg"
    finally:
        matplotlib.use("Agg")
