import pandas as pd
import pytest

from loan_explain.data import (
    LEVELS,
    TALK_COLUMNS,
    feature_descriptions,
    load_credit_data,
    one_hot,
    preprocess,
    split_data,
)


def test_preprocess_columns_and_label(raw_credit, talk_table):
    assert list(talk_table.columns) == TALK_COLUMNS
    assert set(talk_table["risk"].unique()) == {0, 1}
    assert talk_table["risk"].sum() == (raw_credit["class"] == "bad").sum()


def test_preprocess_recodes_categories(talk_table):
    assert set(talk_table["balance"]) <= {"none", "negative", "low", "high"}
    assert set(talk_table["purpose"]) <= set(LEVELS["purpose"])
    assert set(talk_table["employment"]) <= set(LEVELS["employment"])


def test_preprocess_specific_rows():
    raw = pd.DataFrame(
        {
            "class": ["bad", "good"],
            "checking_status": ["<0", "no checking"],
            "duration": [24, 12],
            "credit_amount": [5000, 1200],
            "purpose": ["used car", "radio/tv"],
            "employment": [">=7", "<1"],
            "age": [44, 23],
        }
    )
    df = preprocess(raw)
    assert df.loc[0].to_dict() == {
        "risk": 1,
        "balance": "negative",
        "duration": 24,
        "amount": 5000,
        "purpose": "car",
        "employment": "7y+",
        "age": 44,
    }
    assert df.loc[1, "purpose"] == "household"
    assert df.loc[1, "employment"] == "<1y"


def test_preprocess_strips_arff_quotes():
    raw = pd.DataFrame(
        {
            "class": ["'good'"],
            "checking_status": ["'0<=X<200'"],
            "duration": [6],
            "credit_amount": [700],
            "purpose": ["'business'"],
            "employment": ["'unemployed'"],
            "age": [30],
        }
    )
    df = preprocess(raw)
    assert df.loc[0, "risk"] == 0
    assert df.loc[0, "balance"] == "low"


def test_preprocess_missing_columns(raw_credit):
    with pytest.raises(ValueError, match="credit_amount"):
        preprocess(raw_credit.drop(columns=["credit_amount"]))


def test_preprocess_unknown_category(raw_credit):
    raw = raw_credit.copy()
    raw.loc[0, "purpose"] = "holiday"
    with pytest.raises(ValueError, match="holiday"):
        preprocess(raw)


def test_preprocess_unknown_label(raw_credit):
    raw = raw_credit.copy()
    raw.loc[0, "class"] = "maybe"
    with pytest.raises(ValueError, match="class"):
        preprocess(raw)


def test_one_hot_drops_reference_levels(talk_table):
    encoded = one_hot(talk_table)
    assert encoded.columns[0] == "risk"
    for column, levels in LEVELS.items():
        assert column not in encoded.columns
        assert f"{column}_{levels[0]}" not in encoded.columns
        for level in levels[1:]:
            assert f"{column}_{level}" in encoded.columns
    dummies = [c for c in encoded.columns if c.startswith(("balance_", "purpose_", "employment_"))]
    assert set(encoded[dummies].stack().unique()) <= {0, 1}


def test_one_hot_columns_do_not_depend_on_observed_levels(talk_table):
    subset = talk_table[talk_table["purpose"] == "car"]
    assert list(one_hot(subset).columns) == list(one_hot(talk_table).columns)


def test_split_is_stratified(talk_table):
    encoded = one_hot(talk_table)
    split = split_data(encoded, test_size=0.25, random_state=1)
    assert len(split.X_train) + len(split.X_test) == len(encoded)
    assert "risk" not in split.X_train.columns
    rate = encoded["risk"].mean()
    assert abs(split.y_train.mean() - rate) < 0.05
    assert abs(split.y_test.mean() - rate) < 0.05


def test_load_credit_data_from_csv(raw_credit, tmp_path):
    path = tmp_path / "credit.csv"
    raw_credit.to_csv(path, index=False)
    df = load_credit_data(data_csv=str(path))
    assert df.shape == raw_credit.shape
    assert list(preprocess(df).columns) == TALK_COLUMNS


def test_feature_descriptions_cover_talk_columns():
    assert list(feature_descriptions()) == TALK_COLUMNS
