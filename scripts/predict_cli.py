"""CLI script for rating predictions and recommendations.

Useful for testing and evaluation. Trains a model on a ratings CSV (nothing
is persisted, so every run trains afresh), then prints the predicted rating
for a user-item pair or the top recommendations for a user.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ratingmf.exceptions import MissingKeyError
from ratingmf.recommender.infer import DEFAULT_TOP_N, RatingPredictionRecommender
from ratingmf.recommender.train import ALGORITHMS, DEFAULT_ALGORITHM, TrainingConfig, train_with_config

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s"
)
logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Predict ratings or recommend items for a user",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/predict_cli.py data/ratings.csv 42
  python scripts/predict_cli.py data/ratings.csv 42 --item-id 7
  python scripts/predict_cli.py data/ratings.csv 42 --algorithm batch --top-n 5
        """
    )

    parser.add_argument("csv_path", type=str, help="Ratings CSV to train on")
    parser.add_argument("user_id", type=int, help="User ID")
    parser.add_argument(
        "--item-id",
        type=int,
        default=None,
        help="Item ID to predict; without it the top items are recommended"
    )
    parser.add_argument(
        "--top-n",
        type=int,
        default=DEFAULT_TOP_N,
        help=f"Number of recommendations to return (default: {DEFAULT_TOP_N})"
    )
    parser.add_argument(
        "--algorithm",
        choices=ALGORITHMS,
        default=DEFAULT_ALGORITHM,
        help=f"Trainer to use (default: {DEFAULT_ALGORITHM})"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    try:
        result = train_with_config(
            TrainingConfig(csv_path=args.csv_path, algorithm=args.algorithm)
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: could not train on {args.csv_path}", file=sys.stderr)
        print(f"  {e}", file=sys.stderr)
        return 1

    model = result.model
    try:
        if args.item_id is not None:
            prediction = model.predict(args.user_id, args.item_id)
            print(f"\nPredicted rating of item {args.item_id} by user {args.user_id} "
                  f"({args.algorithm}): {prediction:.4f}")
        else:
            if args.user_id not in model.users:
                raise MissingKeyError("user", args.user_id)
            recommender = RatingPredictionRecommender(result.store, model)
            recommendations = recommender.recommend(args.user_id, top_n=args.top_n)
            print(f"\nRecommendations for user {args.user_id} ({args.algorithm}):")
            print(f"  Top {len(recommendations)} items: {recommendations}")
    except MissingKeyError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
