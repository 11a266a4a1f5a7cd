"""Command-line interface for training a matrix factorisation model.

Trains one of the three trainers on a ratings CSV, optionally evaluates it on
a held-out split, and prints a summary. Trained parameters are not saved.

Example:
    Train with default settings:
        $ python scripts/train_model.py data/fake_ratings.csv

    Batch gradient descent with a holdout split:
        $ python scripts/train_model.py data/ratings.csv \\
            --algorithm batch \\
            --n-factors 5 \\
            --epochs 500 \\
            --test-size 0.2
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ratingmf.api.logging_config import setup_logging as configure_logging
from ratingmf.recommender.evaluate import DEFAULT_RELEVANCE_THRESHOLD, RatingPredictionEvaluator
from ratingmf.recommender.infer import DEFAULT_TOP_N
from ratingmf.recommender.train import (
    ALGORITHMS,
    DEFAULT_ALGORITHM,
    DEFAULT_N_FACTORS,
    DEFAULT_RANDOM_STATE,
    TrainingConfig,
    train_with_config,
)


def setup_logging(verbose: bool = False, json_logs: bool = False) -> None:
    """Configure logging for the script.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise, use INFO.
        json_logs: If True, emit one JSON object per log line.
    """
    configure_logging("DEBUG" if verbose else "INFO", json_logs=json_logs)


def parse_arguments(argv=None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Namespace object containing parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Train a matrix factorisation rating predictor from CSV data.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Stochastic gradient descent with defaults
  python scripts/train_model.py data/ratings.csv

  # Weighted MF with negative sampling, 2 negatives per rating
  python scripts/train_model.py data/ratings.csv --algorithm wmf --neg-rate 2

  # Hold out 20%% of ratings and write test predictions
  python scripts/train_model.py data/ratings.csv --test-size 0.2 --results out/preds.txt
        """,
    )

    parser.add_argument(
        "csv_path",
        type=str,
        help="Path to CSV file with columns: user_id, item_id, rating",
    )
    parser.add_argument(
        "--algorithm",
        choices=ALGORITHMS,
        default=DEFAULT_ALGORITHM,
        help=f"Trainer to use (default: {DEFAULT_ALGORITHM})",
    )
    parser.add_argument(
        "--n-factors",
        type=int,
        default=DEFAULT_N_FACTORS,
        help=f"Latent dimension K (default: {DEFAULT_N_FACTORS})",
    )
    parser.add_argument("--learning-rate", type=float, default=None, help="Learning rate")
    parser.add_argument("--epochs", type=int, default=None, help="Number of passes")
    parser.add_argument(
        "--regularization",
        type=float,
        default=None,
        help="Regularisation weight for factors and biases",
    )
    parser.add_argument(
        "--num-reports",
        type=int,
        default=None,
        help="Number of RMSE reports during training (0 disables them)",
    )
    parser.add_argument("--alpha", type=float, default=None, help="WMF confidence multiplier")
    parser.add_argument(
        "--neg-rate", type=int, default=None, help="WMF negative samples per rating"
    )
    parser.add_argument(
        "--test-size",
        type=float,
        default=0.0,
        help="Fraction of ratings held out for evaluation (default: 0, no holdout)",
    )
    parser.add_argument(
        "--top-n",
        type=int,
        default=DEFAULT_TOP_N,
        help=f"Cut-off k for holdout precision@k and recall@k (default: {DEFAULT_TOP_N})",
    )
    parser.add_argument(
        "--relevance-threshold",
        type=float,
        default=DEFAULT_RELEVANCE_THRESHOLD,
        help="Minimum held-out rating counted as relevant for precision/recall",
    )
    parser.add_argument(
        "--results",
        type=str,
        default=None,
        help="Write held-out predictions to this file",
    )
    parser.add_argument(
        "--random-state",
        type=int,
        default=DEFAULT_RANDOM_STATE,
        help=f"Random seed for reproducibility (default: {DEFAULT_RANDOM_STATE})",
    )
    parser.add_argument(
        "--json-logs", action="store_true", help="Emit structured JSON logs"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args(argv)


def validate_csv_path(csv_path: str) -> None:
    """Validate that the CSV file exists and is readable.

    Raises:
        FileNotFoundError: If CSV file does not exist.
        ValueError: If path is not a file.
    """
    path = Path(csv_path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {csv_path}")


def main(argv=None) -> int:
    """Main entry point for the training script.

    Returns:
        Exit code: 0 on success, 1 on error.
    """
    try:
        args = parse_arguments(argv)
        setup_logging(verbose=args.verbose, json_logs=args.json_logs)
        logger = logging.getLogger(__name__)

        logger.info(f"Validating CSV path: {args.csv_path}")
        validate_csv_path(args.csv_path)

        config = TrainingConfig(
            csv_path=args.csv_path,
            algorithm=args.algorithm,
            n_factors=args.n_factors,
            learning_rate=args.learning_rate,
            n_epochs=args.epochs,
            regularization=args.regularization,
            num_reports=args.num_reports,
            alpha=args.alpha,
            negative_sampling_rate=args.neg_rate,
            test_size=args.test_size,
            top_n=args.top_n,
            relevance_threshold=args.relevance_threshold,
            random_state=args.random_state,
        )

        logger.info("=" * 70)
        logger.info("Training Configuration")
        logger.info("=" * 70)
        logger.info(f"CSV path:       {config.csv_path}")
        logger.info(f"Algorithm:      {config.algorithm}")
        logger.info(f"Factors:        {config.n_factors}")
        logger.info(f"Test size:      {config.test_size}")
        logger.info(f"Random state:   {config.random_state}")
        logger.info("=" * 70)

        result = train_with_config(config)
        model = result.model

        logger.info("=" * 70)
        logger.info("Training Summary")
        logger.info("=" * 70)
        logger.info(f"Number of users:  {model.n_users}")
        logger.info(f"Number of items:  {model.n_items}")
        logger.info(f"Hyperparameters:  {model.hyperparams}")
        if result.history:
            first, last = result.history[0], result.history[-1]
            logger.info(f"Training RMSE:    {first.rmse:.4f} (iter {first.epoch}) -> "
                        f"{last.rmse:.4f} (iter {last.epoch})")
        if result.metrics:
            logger.info(f"Test metrics:     {result.metrics}")
            logger.info(f"Item-mean:        {result.baseline_metrics}")
        logger.info("=" * 70)

        if args.results:
            if args.test_size <= 0:
                raise ValueError("--results needs a holdout split (--test-size > 0)")
            RatingPredictionEvaluator(model, result.test_data).write_results(args.results)

        logger.info("Training completed successfully!")
        return 0

    except FileNotFoundError as e:
        logging.error(f"File error: {e}")
        return 1
    except ValueError as e:
        logging.error(f"Validation error: {e}")
        return 1
    except KeyboardInterrupt:
        logging.warning("Training interrupted by user")
        return 130
    except Exception as e:
        logging.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
