import argparse
import os
from dataclasses import dataclass
from typing import List, Optional

# Resolved against the working directory by from_args()
DEFAULT_OUTPUT_DIR = "outputs"
DEFAULT_DECK_NAME = "interpretability_talk.pptx"

RANDOM_STATE = 42
TEST_SIZE = 0.25

# Numeric features swept on the partial dependence slide
PDP_FEATURES = ("duration", "amount", "age")

# Index 1 is the positive class (risk == 1)
CLASS_NAMES = ("good", "bad")

DECK_TITLE = "Opening the black box"
DECK_SUBTITLE = "Interpreting credit risk models: coefficients, trees, permutation importance, PDP, LIME and Shapley values"


@dataclass
class RunConfig:
    output_dir: str = DEFAULT_OUTPUT_DIR
    deck_name: str = DEFAULT_DECK_NAME
    data_csv: Optional[str] = None
    data_home: Optional[str] = None
    test_size: float = TEST_SIZE
    random_state: int = RANDOM_STATE
    n_estimators: int = 500
    n_repeats: int = 10
    instance_index: int = 0
    lime_num_features: int = 6
    tree_depth: int = 3
    log_level: str = "INFO"

    @property
    def figures_dir(self) -> str:
        return os.path.join(self.output_dir, "figures")

    @property
    def deck_path(self) -> str:
        return os.path.join(self.output_dir, self.deck_name)

    @classmethod
    def from_args(cls, argv: Optional[List[str]] = None) -> "RunConfig":
        parser = argparse.ArgumentParser(
            description="Fit two credit risk models and render the interpretability talk deck."
        )
        parser.add_argument("--out", default=DEFAULT_OUTPUT_DIR, help="Directory for figures and the deck")
        parser.add_argument("--deck-name", default=DEFAULT_DECK_NAME, help="File name of the .pptx deck")
        parser.add_argument(
            "--data-csv",
            default=None,
            help="Local CSV with the raw credit-g columns (default: fetch from OpenML)",
        )
        parser.add_argument("--data-home", default=None, help="Cache directory for the OpenML download")
        parser.add_argument("--test-size", type=float, default=TEST_SIZE, help="Fraction of rows held out")
        parser.add_argument("--seed", type=int, default=RANDOM_STATE, help="Random state for split, models and explainers")
        parser.add_argument("--trees", type=int, default=500, help="Number of trees in the random forest")
        parser.add_argument("--repeats", type=int, default=10, help="Shuffles per feature for permutation importance")
        parser.add_argument("--instance", type=int, default=0, help="Test-set row explained by LIME and Shapley values")
        parser.add_argument("--lime-features", type=int, default=6, help="Number of conditions shown by LIME")
        parser.add_argument("--tree-depth", type=int, default=3, help="Depth drawn on the decision tree slide")
        parser.add_argument(
            "--log-level",
            default="INFO",
            choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        )
        args = parser.parse_args(argv)

        if not 0.0 < args.test_size < 1.0:
            parser.error("--test-size must be between 0 and 1")
        for flag, value in (
            ("--trees", args.trees),
            ("--repeats", args.repeats),
            ("--lime-features", args.lime_features),
            ("--tree-depth", args.tree_depth),
        ):
            if value < 1:
                parser.error(f"{flag} must be at least 1")

        return cls(
            output_dir=os.path.abspath(args.out),
            deck_name=args.deck_name,
            data_csv=args.data_csv,
            data_home=args.data_home,
            test_size=args.test_size,
            random_state=args.seed,
            n_estimators=args.trees,
            n_repeats=args.repeats,
            instance_index=args.instance,
            lime_num_features=args.lime_features,
            tree_depth=args.tree_depth,
            log_level=args.log_level,
        )
