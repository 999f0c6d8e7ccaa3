import logging
import os
from typing import Dict, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from sklearn import tree as sktree

from .config import CLASS_NAMES
from .explain import LocalExplanation, ShapleyExplanation

logger = logging.getLogger(__name__)

RAISES_RISK = "#C0392B"
LOWERS_RISK = "#2E86C1"
NEUTRAL = "#7F8C8D"
MODEL_COLORS = ("#2E86C1", "#D35400", "#27AE60", "#8E44AD")

DPI = 150


def _ensure_dir(path: str):
    os.makedirs(path, exist_ok=True)


def _save(out_dir: str, name: str) -> str:
    _ensure_dir(out_dir)
    out_path = os.path.join(out_dir, name)
    plt.savefig(out_path, dpi=DPI, bbox_inches="tight", facecolor="white")
    plt.close()
    logger.info("Saved: %s", out_path)
    return out_path


def _signed_colors(values) -> list:
    return [RAISES_RISK if v > 0 else LOWERS_RISK for v in values]


def plot_coefficients(coefs: pd.DataFrame, out_dir: str) -> str:
    """Horizontal bars of logistic regression coefficients, largest on top."""
    df = coefs.iloc[::-1]
    plt.figure(figsize=(9, max(4, 0.35 * len(df))))
    plt.barh(df["feature"], df["coefficient"], color=_signed_colors(df["coefficient"]))
    plt.axvline(0, color="#333333", linewidth=0.8)
    plt.title("Logistic regression coefficients (standardised features)")
    plt.xlabel("Change in log-odds of bad risk per standard deviation")
    plt.tight_layout()
    return _save(out_dir, "coefficients.png")


def plot_tree(
    fitted_tree,
    feature_names: Sequence[str],
    out_dir: str,
    max_depth: int = 3,
) -> str:
    plt.figure(figsize=(18, 9))
    sktree.plot_tree(
        fitted_tree,
        max_depth=max_depth,
        feature_names=list(feature_names),
        class_names=list(CLASS_NAMES),
        filled=True,
        rounded=True,
        impurity=False,
        proportion=True,
        fontsize=9,
    )
    plt.title(f"One tree of the random forest (first {max_depth} levels)")
    return _save(out_dir, "forest_tree.png")


def plot_permutation_importance(tables: Dict[str, pd.DataFrame], out_dir: str, top_n: Optional[int] = 10) -> str:
    """One panel per model; bars are mean ROC AUC drop, whiskers one std."""
    n = len(tables)
    fig, axes = plt.subplots(1, n, figsize=(7 * n, 5), squeeze=False)
    for ax, (name, df) in zip(axes[0], tables.items()):
        df = df.head(top_n) if top_n else df
        df = df.iloc[::-1]
        ax.barh(df["feature"], df["importance_mean"], xerr=df["importance_std"], capsize=3, color=NEUTRAL)
        ax.axvline(0, color="#333333", linewidth=0.8)
        ax.set_title(name)
        ax.set_xlabel("Drop in ROC AUC after shuffling")
    fig.suptitle("Permutation importance (test set)")
    fig.tight_layout()
    return _save(out_dir, "permutation_importance.png")


def plot_partial_dependence(pdp: pd.DataFrame, out_dir: str) -> str:
    features = list(dict.fromkeys(pdp["feature"]))
    models = list(dict.fromkeys(pdp["model"]))
    fig, axes = plt.subplots(1, len(features), figsize=(5 * len(features), 4.2), squeeze=False, sharey=True)
    for ax, feature in zip(axes[0], features):
        for color, name in zip(MODEL_COLORS, models):
            sub = pdp[(pdp["feature"] == feature) & (pdp["model"] == name)]
            ax.plot(sub["value"], sub["average"], color=color, linewidth=2, label=name)
        ax.set_xlabel(feature)
        ax.grid(alpha=0.3)
    axes[0][0].set_ylabel("Average predicted P(bad risk)")
    axes[0][0].legend(loc="best")
    fig.suptitle("Partial dependence")
    fig.tight_layout()
    return _save(out_dir, "partial_dependence.png")


def plot_lime(explanation: LocalExplanation, out_dir: str) -> str:
    df = explanation.weights.iloc[::-1]
    plt.figure(figsize=(9, max(3.5, 0.5 * len(df))))
    plt.barh(df["condition"], df["weight"], color=_signed_colors(df["weight"]))
    plt.axvline(0, color="#333333", linewidth=0.8)
    plt.title(
        f"LIME: P(bad risk) = {explanation.predicted_proba:.2f} "
        f"(local surrogate {explanation.local_proba:.2f})"
    )
    plt.xlabel("Weight in the local linear model")
    plt.tight_layout()
    return _save(out_dir, "lime.png")


def plot_shapley(explanation: ShapleyExplanation, out_dir: str, top_n: int = 8) -> str:
    """
    Waterfall from the average prediction to this applicant's prediction.

    Features beyond `top_n` are folded into one "other features" bar so the
    bars still add up to the prediction.
    """
    df = explanation.values
    head = df.head(top_n)
    labels = [f"{f} = {v:g}" for f, v in zip(head["feature"], head["value"])]
    contributions = list(head["shap_value"])
    rest = df["shap_value"].iloc[top_n:].sum()
    if len(df) > top_n:
        labels.append(f"{len(df) - top_n} other features")
        contributions.append(rest)

    starts = explanation.base_value + np.concatenate([[0.0], np.cumsum(contributions)[:-1]])
    y = np.arange(len(contributions))[::-1]

    plt.figure(figsize=(9, max(4, 0.5 * len(contributions) + 1)))
    plt.barh(y, contributions, left=starts, color=_signed_colors(contributions))
    plt.yticks(y, labels)
    plt.axvline(explanation.base_value, color=NEUTRAL, linestyle="--", linewidth=1, label="average prediction")
    plt.axvline(explanation.predicted_proba, color="#333333", linewidth=1, label="this applicant")
    plt.xlabel("P(bad risk)")
    plt.title(
        f"Shapley values: {explanation.base_value:.2f} (average) → {explanation.predicted_proba:.2f} (this applicant)"
    )
    plt.legend(loc="lower right")
    plt.tight_layout()
    return _save(out_dir, "shapley.png")


def plot_table(df: pd.DataFrame, out_dir: str, name: str, title: Optional[str] = None) -> str:
    rows = len(df)
    plt.figure(figsize=(max(6, 1.6 * len(df.columns)), max(1.8, 0.45 * (rows + 1) + 0.6)))
    plt.axis("off")

    cell_text = [[f"{v:.3f}" if isinstance(v, float) else str(v) for v in row] for row in df.itertuples(index=False)]
    table = plt.table(cellText=cell_text, colLabels=list(df.columns), loc="center", cellLoc="center")
    table.auto_set_font_size(False)
    table.set_fontsize(10)
    table.scale(1, 1.4)
    for (r, _), cell in table.get_celld().items():
        if r == 0:
            cell.set_facecolor("#1C2D40")
            cell.get_text().set_color("white")
    if title:
        plt.title(title, fontsize=12, pad=12)
    plt.tight_layout()
    return _save(out_dir, name)
