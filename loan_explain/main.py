import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import matplotlib
import pandas as pd

from . import plots
from .config import DECK_SUBTITLE, DECK_TITLE, PDP_FEATURES, RunConfig
from .data import Split, feature_descriptions, load_credit_data, one_hot, preprocess, split_data
from .explain import (
    LocalExplanation,
    ShapleyExplanation,
    coefficient_table,
    forest_tree,
    lime_explanation,
    partial_dependence_frame,
    permutation_importance_table,
    pick_instance,
    shapley_values,
)
from .logging_setup import setup_logging
from .models import FOREST, LOGISTIC, evaluate, fit_models
from .slides import build_deck, talk_slides

logger = logging.getLogger(__name__)


@dataclass
class TalkResults:
    """Everything the slides read, computed once by run()."""

    split: Split
    n_rows: int
    bad_rate: float
    descriptions: Dict[str, str]
    performance: pd.DataFrame
    coefficients: pd.DataFrame
    permutation: Dict[str, pd.DataFrame]
    partial_dependence: pd.DataFrame
    lime: LocalExplanation
    shapley: ShapleyExplanation
    figures: Dict[str, str] = field(default_factory=dict)


def run(config: RunConfig, raw: Optional[pd.DataFrame] = None) -> str:
    """
    Load, preprocess, split, fit both models, draw every chart and write the deck.

    `raw` replaces the dataset download when given. Returns the deck path.
    """
    if raw is None:
        raw = load_credit_data(config.data_csv, config.data_home)
    talk = preprocess(raw)
    encoded = one_hot(talk)
    split = split_data(encoded, test_size=config.test_size, random_state=config.random_state)
    features: List[str] = list(split.X_train.columns)

    models = fit_models(split, config)
    performance = evaluate(models, split.X_test, split.y_test)

    instance = pick_instance(split.X_test, config.instance_index)
    results = TalkResults(
        split=split,
        n_rows=len(talk),
        bad_rate=float(talk["risk"].mean()),
        descriptions=feature_descriptions(),
        performance=performance,
        coefficients=coefficient_table(models[LOGISTIC], features),
        permutation={
            name: permutation_importance_table(
                model,
                split.X_test,
                split.y_test,
                n_repeats=config.n_repeats,
                random_state=config.random_state,
            )
            for name, model in models.items()
        },
        partial_dependence=partial_dependence_frame(models, split.X_train, PDP_FEATURES),
        lime=lime_explanation(
            models[FOREST],
            split.X_train,
            instance,
            num_features=config.lime_num_features,
            random_state=config.random_state,
        ),
        shapley=shapley_values(models[FOREST], instance),
    )

    out = config.figures_dir
    results.figures = {
        "dataset": plots.plot_table(talk.head(8), out, "dataset.png", title="First applications"),
        "performance": plots.plot_table(performance, out, "performance.png", title="Test-set performance"),
        "coefficients": plots.plot_coefficients(results.coefficients, out),
        "tree": plots.plot_tree(forest_tree(models[FOREST]), features, out, max_depth=config.tree_depth),
        "permutation": plots.plot_permutation_importance(results.permutation, out),
        "pdp": plots.plot_partial_dependence(results.partial_dependence, out),
        "lime": plots.plot_lime(results.lime, out),
        "shapley": plots.plot_shapley(results.shapley, out),
    }

    slides = talk_slides(results, config)
    return build_deck(slides, config.deck_path, DECK_TITLE, DECK_SUBTITLE)


def main(argv: Optional[List[str]] = None) -> int:
    config = RunConfig.from_args(argv)
    # Charts are only written to files
    matplotlib.use("Agg")
    setup_logging(config.log_level)

    start_time = time.time()
    deck_path = run(config)
    total_time = time.time() - start_time

    print("\nDeck written:")
    print("=" * 50)
    print(f"Deck:    {deck_path}")
    print(f"Figures: {config.figures_dir}")
    print(f"Total Execution Time: {total_time:.2f} seconds")
    print("=" * 50)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
