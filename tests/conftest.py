import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from loan_explain.config import RunConfig
from loan_explain.data import EMPLOYMENT_MAP, PURPOSE_MAP, one_hot, preprocess, split_data
from loan_explain.models import fit_models


def make_raw_credit(n: int = 240, seed: int = 0) -> pd.DataFrame:
    """Synthetic table in the raw credit-g schema, with a learnable bad-risk signal."""
    rng = np.random.RandomState(seed)
    checking = rng.choice(["<0", "0<=X<200", ">=200", "no checking"], n)
    duration = rng.randint(6, 61, n)
    amount = rng.randint(250, 15000, n)
    age = rng.randint(19, 76, n)
    score = (
        0.05 * duration
        + 1.5 * (checking == "<0")
        - 1.2 * (checking == "no checking")
        - 0.03 * (age - 35)
        + rng.normal(0, 0.8, n)
    )
    label = np.where(score > np.quantile(score, 0.7), "bad", "good")
    return pd.DataFrame(
        {
            "checking_status": checking,
            "duration": duration,
            "credit_history": rng.choice(["existing paid", "critical/other existing credit"], n),
            "purpose": rng.choice(sorted(PURPOSE_MAP), n),
            "credit_amount": amount,
            "savings_status": rng.choice(["<100", "no known savings"], n),
            "employment": rng.choice(sorted(EMPLOYMENT_MAP), n),
            "age": age,
            "class": label,
        }
    )


def small_config(output_dir) -> RunConfig:
    return RunConfig(
        output_dir=str(output_dir),
        n_estimators=30,
        n_repeats=2,
        lime_num_features=4,
        tree_depth=2,
    )


@pytest.fixture(scope="session")
def raw_credit():
    return make_raw_credit()


@pytest.fixture(scope="session")
def talk_table(raw_credit):
    return preprocess(raw_credit)


@pytest.fixture(scope="session")
def split(talk_table):
    return split_data(one_hot(talk_table), test_size=0.25, random_state=0)


@pytest.fixture(scope="session")
def models(split, tmp_path_factory):
    return fit_models(split, small_config(tmp_path_factory.mktemp("models")))
