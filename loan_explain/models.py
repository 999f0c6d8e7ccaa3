import logging
from collections import OrderedDict
from typing import Dict

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import accuracy_score, roc_auc_score
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from .config import RANDOM_STATE, RunConfig
from .data import Split

logger = logging.getLogger(__name__)

LOGISTIC = "Logistic regression"
FOREST = "Random forest"


def fit_logistic_regression(X: pd.DataFrame, y: pd.Series, random_state: int = RANDOM_STATE) -> Pipeline:
    """
    Standardise inputs, then fit a logistic regression.

    Coefficients are therefore per standard deviation of each feature and
    can be compared on one chart.
    """
    model = Pipeline(
        [
            ("scale", StandardScaler()),
            ("logreg", LogisticRegression(max_iter=1000, random_state=random_state)),
        ]
    )
    model.fit(X, y)
    return model


def fit_random_forest(
    X: pd.DataFrame,
    y: pd.Series,
    n_estimators: int = 500,
    random_state: int = RANDOM_STATE,
) -> RandomForestClassifier:
    model = RandomForestClassifier(
        n_estimators=n_estimators,
        min_samples_leaf=5,
        n_jobs=1,
        random_state=random_state,
    )
    model.fit(X, y)
    return model


def fit_models(split: Split, config: RunConfig) -> "OrderedDict[str, object]":
    models = OrderedDict()
    models[LOGISTIC] = fit_logistic_regression(split.X_train, split.y_train, config.random_state)
    models[FOREST] = fit_random_forest(
        split.X_train,
        split.y_train,
        n_estimators=config.n_estimators,
        random_state=config.random_state,
    )
    for name in models:
        logger.info("Fitted %s on %d rows", name, len(split.X_train))
    return models


def positive_proba(model, X: pd.DataFrame) -> np.ndarray:
    """Predicted probability of a bad credit risk."""
    return model.predict_proba(X)[:, 1]


def evaluate(models: Dict[str, object], X_test: pd.DataFrame, y_test: pd.Series) -> pd.DataFrame:
    rows = []
    for name, model in models.items():
        proba = positive_proba(model, X_test)
        rows.append(
            {
                "model": name,
                "accuracy": float(accuracy_score(y_test, (proba >= 0.5).astype(int))),
                "roc_auc": float(roc_auc_score(y_test, proba)),
            }
        )
        logger.info("%s: accuracy=%.3f roc_auc=%.3f", name, rows[-1]["accuracy"], rows[-1]["roc_auc"])
    return pd.DataFrame(rows, columns=["model", "accuracy", "roc_auc"])
