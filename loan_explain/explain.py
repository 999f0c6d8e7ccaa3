import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd
import shap
from lime.lime_tabular import LimeTabularExplainer
from sklearn.ensemble import RandomForestClassifier
from sklearn.inspection import partial_dependence, permutation_importance
from sklearn.pipeline import Pipeline
from sklearn.tree import DecisionTreeClassifier

from .config import CLASS_NAMES, RANDOM_STATE
from .data import LEVELS
from .models import positive_proba

logger = logging.getLogger(__name__)


@dataclass
class LocalExplanation:
    """LIME surrogate for one applicant: condition weights on the bad-risk probability."""

    weights: pd.DataFrame
    predicted_proba: float
    local_proba: float
    intercept: float


@dataclass
class ShapleyExplanation:
    """Per-feature Shapley values for one applicant; values + base_value = predicted_proba."""

    values: pd.DataFrame
    base_value: float
    predicted_proba: float


def pick_instance(X_test: pd.DataFrame, index: int) -> pd.DataFrame:
    n = len(X_test)
    if not -n <= index < n:
        raise IndexError(f"Instance {index} outside the test set ({n} rows)")
    return X_test.iloc[[index]]


def coefficient_table(model, feature_names: Sequence[str]) -> pd.DataFrame:
    """
    Logistic regression coefficients with odds ratios, largest |coefficient| first.

    For the standardised pipeline from `fit_logistic_regression` the
    coefficients are log-odds per standard deviation of the feature.
    """
    est = model[-1] if isinstance(model, Pipeline) else model
    if not hasattr(est, "coef_"):
        raise TypeError(f"{type(est).__name__} has no linear coefficients")

    coef = np.ravel(est.coef_)
    if len(coef) != len(feature_names):
        raise ValueError(f"Got {len(feature_names)} feature names for {len(coef)} coefficients")

    df = pd.DataFrame({"feature": list(feature_names), "coefficient": coef, "odds_ratio": np.exp(coef)})
    order = np.argsort(-np.abs(coef), kind="stable")
    return df.iloc[order].reset_index(drop=True)


def forest_tree(model, index: int = 0) -> DecisionTreeClassifier:
    if not isinstance(model, RandomForestClassifier):
        raise TypeError(f"Expected a RandomForestClassifier, got {type(model).__name__}")
    if not 0 <= index < len(model.estimators_):
        raise IndexError(f"Tree {index} outside the forest ({len(model.estimators_)} trees)")
    return model.estimators_[index]


def permutation_importance_table(
    model,
    X: pd.DataFrame,
    y: pd.Series,
    n_repeats: int = 10,
    random_state: int = RANDOM_STATE,
) -> pd.DataFrame:
    """
    Drop in test-set ROC AUC when each feature is shuffled, averaged over
    `n_repeats` shuffles.
    """
    result = permutation_importance(
        model,
        X,
        y,
        scoring="roc_auc",
        n_repeats=n_repeats,
        random_state=random_state,
        n_jobs=1,
    )
    df_imp = pd.DataFrame(
        {
            "feature": list(X.columns),
            "importance_mean": result.importances_mean,
            "importance_std": result.importances_std,
        }
    )
    df_imp.sort_values("importance_mean", ascending=False, inplace=True)
    return df_imp.reset_index(drop=True)


def partial_dependence_table(model, X: pd.DataFrame, feature: str, grid_resolution: int = 20) -> pd.DataFrame:
    if feature not in X.columns:
        raise ValueError(f"Unknown feature '{feature}'. Available: {list(X.columns)}")

    # Integer columns give an integer grid; sweep on floats instead
    result = partial_dependence(
        model,
        X.astype(float),
        features=[feature],
        kind="average",
        grid_resolution=grid_resolution,
    )
    return pd.DataFrame(
        {
            "feature": feature,
            "value": np.asarray(result["grid_values"][0], dtype=float),
            "average": np.asarray(result["average"][0], dtype=float),
        }
    )


def partial_dependence_frame(
    models: Dict[str, object],
    X: pd.DataFrame,
    features: Sequence[str],
    grid_resolution: int = 20,
) -> pd.DataFrame:
    frames = []
    for name, model in models.items():
        for feature in features:
            df = partial_dependence_table(model, X, feature, grid_resolution=grid_resolution)
            df.insert(0, "model", name)
            frames.append(df)
    return pd.concat(frames, ignore_index=True)


def _categorical_indices(columns: Sequence[str]) -> List[int]:
    prefixes = tuple(f"{c}_" for c in LEVELS)
    return [i for i, c in enumerate(columns) if c.startswith(prefixes)]


def lime_explanation(
    model,
    X_train: pd.DataFrame,
    instance: pd.DataFrame,
    num_features: int = 6,
    random_state: int = RANDOM_STATE,
) -> LocalExplanation:
    """
    Fit a LIME surrogate around one applicant.

    Numeric features are discretised into quartiles; one-hot indicator
    columns are treated as categorical so LIME samples them from their
    training frequencies.
    """
    columns = list(X_train.columns)
    explainer = LimeTabularExplainer(
        X_train.to_numpy(dtype=float),
        mode="classification",
        feature_names=columns,
        class_names=list(CLASS_NAMES),
        categorical_features=_categorical_indices(columns),
        discretize_continuous=True,
        random_state=random_state,
    )

    def predict_fn(arr: np.ndarray) -> np.ndarray:
        return model.predict_proba(pd.DataFrame(arr, columns=columns))

    exp = explainer.explain_instance(
        instance.to_numpy(dtype=float)[0],
        predict_fn,
        labels=(1,),
        num_features=num_features,
    )
    weights = pd.DataFrame(exp.as_list(label=1), columns=["condition", "weight"])
    local_pred = np.ravel(exp.local_pred)
    return LocalExplanation(
        weights=weights,
        predicted_proba=float(exp.predict_proba[1]),
        local_proba=float(local_pred[0]),
        intercept=float(exp.intercept[1]),
    )


def shapley_values(model, instance: pd.DataFrame) -> ShapleyExplanation:
    """
    Exact tree Shapley values (TreeSHAP) of the bad-risk probability for one
    applicant.
    """
    explainer = shap.TreeExplainer(model)
    values = explainer.shap_values(instance)
    # Older shap returns one array per class, newer a (rows, features, classes) array
    if isinstance(values, list):
        values = values[1]
    values = np.asarray(values)
    if values.ndim == 3:
        values = values[..., 1]

    base_value = float(np.atleast_1d(explainer.expected_value)[-1])
    df = pd.DataFrame(
        {
            "feature": list(instance.columns),
            "value": instance.iloc[0].to_numpy(),
            "shap_value": values[0],
        }
    )
    df = df.iloc[np.argsort(-np.abs(df["shap_value"].to_numpy()), kind="stable")].reset_index(drop=True)
    predicted = float(positive_proba(model, instance)[0])
    logger.debug("Shapley sum %.4f vs prediction %.4f", base_value + df["shap_value"].sum(), predicted)
    return ShapleyExplanation(values=df, base_value=base_value, predicted_proba=predicted)
