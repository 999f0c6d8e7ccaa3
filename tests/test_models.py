import numpy as np
from sklearn.ensemble import RandomForestClassifier
from sklearn.pipeline import Pipeline

from loan_explain.models import FOREST, LOGISTIC, evaluate, positive_proba


def test_fit_models_returns_both_in_order(models):
    assert list(models) == [LOGISTIC, FOREST]
    assert isinstance(models[LOGISTIC], Pipeline)
    assert isinstance(models[FOREST], RandomForestClassifier)
    assert len(models[FOREST].estimators_) == 30


def test_positive_proba_is_probability(models, split):
    for model in models.values():
        proba = positive_proba(model, split.X_test)
        assert proba.shape == (len(split.X_test),)
        assert np.all((proba >= 0) & (proba <= 1))


def test_evaluate_table(models, split):
    perf = evaluate(models, split.X_test, split.y_test)
    assert list(perf.columns) == ["model", "accuracy", "roc_auc"]
    assert list(perf["model"]) == [LOGISTIC, FOREST]
    assert perf["accuracy"].between(0, 1).all()
    # The synthetic signal is strong enough for both models to beat chance
    assert (perf["roc_auc"] > 0.6).all()
