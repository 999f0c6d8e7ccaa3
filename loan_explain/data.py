import logging
from collections import OrderedDict
from typing import Dict, NamedTuple, Optional

import pandas as pd
from sklearn.datasets import fetch_openml
from sklearn.model_selection import train_test_split

from .config import RANDOM_STATE, TEST_SIZE

logger = logging.getLogger(__name__)

OPENML_NAME = "credit-g"
OPENML_VERSION = 1

RAW_COLUMNS = [
    "class",
    "checking_status",
    "duration",
    "credit_amount",
    "purpose",
    "employment",
    "age",
]

TALK_COLUMNS = ["risk", "balance", "duration", "amount", "purpose", "employment", "age"]

BALANCE_MAP = {
    "<0": "negative",
    "0<=X<200": "low",
    ">=200": "high",
    "no checking": "none",
}

PURPOSE_MAP = {
    "new car": "car",
    "used car": "car",
    "furniture/equipment": "household",
    "radio/tv": "household",
    "domestic appliance": "household",
    "education": "education",
    "retraining": "education",
    "business": "business",
    "repairs": "repairs",
    "other": "other",
}

EMPLOYMENT_MAP = {
    "unemployed": "unemployed",
    "<1": "<1y",
    "1<=X<4": "1-4y",
    "4<=X<7": "4-7y",
    ">=7": "7y+",
}

# First level of each tuple is the reference category dropped by one_hot()
LEVELS = OrderedDict(
    [
        ("balance", ("none", "negative", "low", "high")),
        ("purpose", ("car", "household", "education", "business", "repairs", "other")),
        ("employment", ("unemployed", "<1y", "1-4y", "4-7y", "7y+")),
    ]
)


class Split(NamedTuple):
    X_train: pd.DataFrame
    X_test: pd.DataFrame
    y_train: pd.Series
    y_test: pd.Series


def load_credit_data(data_csv: Optional[str] = None, data_home: Optional[str] = None) -> pd.DataFrame:
    """
    Load the raw German credit table (1000 applications).

    Reads `data_csv` when given, otherwise fetches `credit-g` from OpenML
    through scikit-learn (cached under `data_home`).
    """
    if data_csv is not None:
        df = pd.read_csv(data_csv)
        logger.info("Loaded %d rows from %s", len(df), data_csv)
        return df

    bunch = fetch_openml(
        name=OPENML_NAME,
        version=OPENML_VERSION,
        as_frame=True,
        data_home=data_home,
        parser="auto",
    )
    df = bunch.frame
    logger.info("Fetched %s from OpenML: %d rows, %d columns", OPENML_NAME, *df.shape)
    return df


def _recode(raw: pd.Series, mapping: Dict[str, str], column: str) -> pd.Series:
    # ARFF quoting survives in some liac-arff versions
    values = raw.astype(str).str.strip().str.strip("'\"")
    unknown = sorted(set(values.unique()) - set(mapping))
    if unknown:
        raise ValueError(f"Unknown values in column '{column}': {unknown}")
    return values.map(mapping)


def preprocess(raw: pd.DataFrame) -> pd.DataFrame:
    """Rename and recode the raw columns into the seven-column talk table."""
    missing = [c for c in RAW_COLUMNS if c not in raw.columns]
    if missing:
        raise ValueError(f"Missing columns. Required: {RAW_COLUMNS}, missing: {missing}")

    label = raw["class"].astype(str).str.strip().str.strip("'\"")
    unknown = sorted(set(label.unique()) - {"good", "bad"})
    if unknown:
        raise ValueError(f"Unknown values in column 'class': {unknown}")

    df = pd.DataFrame(
        {
            "risk": (label == "bad").astype(int),
            "balance": _recode(raw["checking_status"], BALANCE_MAP, "checking_status"),
            "duration": pd.to_numeric(raw["duration"]).astype(int),
            "amount": pd.to_numeric(raw["credit_amount"]).astype(int),
            "purpose": _recode(raw["purpose"], PURPOSE_MAP, "purpose"),
            "employment": _recode(raw["employment"], EMPLOYMENT_MAP, "employment"),
            "age": pd.to_numeric(raw["age"]).astype(int),
        },
        index=raw.index,
    )
    logger.info("Preprocessed %d applications, bad-risk rate %.1f%%", len(df), 100 * df["risk"].mean())
    return df[TALK_COLUMNS].reset_index(drop=True)


def one_hot(df: pd.DataFrame) -> pd.DataFrame:
    """
    One-hot encode the categorical talk columns against fixed reference levels.

    Each categorical column becomes integer indicator columns named
    `<column>_<level>`; the reference (first) level is dropped.
    """
    out = df.copy()
    for column, levels in LEVELS.items():
        out[column] = pd.Categorical(out[column], categories=list(levels))
    encoded = pd.get_dummies(out, columns=list(LEVELS), drop_first=True, dtype=int)
    cols = ["risk"] + [c for c in encoded.columns if c != "risk"]
    return encoded[cols]


def split_data(encoded: pd.DataFrame, test_size: float = TEST_SIZE, random_state: int = RANDOM_STATE) -> Split:
    X = encoded.drop(columns=["risk"])
    y = encoded["risk"]
    X_train, X_test, y_train, y_test = train_test_split(
        X,
        y,
        test_size=test_size,
        random_state=random_state,
        stratify=y,
    )
    logger.info("Split: %d train rows, %d test rows", len(X_train), len(X_test))
    return Split(X_train, X_test, y_train, y_test)


def feature_descriptions() -> "OrderedDict[str, str]":
    return OrderedDict(
        [
            ("risk", "1 = bad credit risk, 0 = good"),
            ("balance", "checking account balance: none, negative, low, high"),
            ("duration", "loan duration in months"),
            ("amount", "loan amount (Deutsche Mark)"),
            ("purpose", "car, household, education, business, repairs, other"),
            ("employment", "years with current employer"),
            ("age", "applicant age in years"),
        ]
    )
