"""Matrix factorisation training pipeline.

This module wires the pieces together: load ratings from CSV, optionally hold
out a test split, build a model with the chosen trainer, fit it, and
evaluate it against the held-out ratings (rating error and top-N precision
and recall) and an item-mean baseline.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Tuple

from ratingmf.recommender.evaluate import (
    DEFAULT_RELEVANCE_THRESHOLD,
    ItemMeanPredictor,
    RatingPredictionEvaluator,
    top_n_metrics,
)
from ratingmf.recommender.infer import DEFAULT_TOP_N, RatingPredictionRecommender
from ratingmf.recommender.model import MatrixFactorizationModel
from ratingmf.recommender.store import (
    DEFAULT_ITEM_COL,
    DEFAULT_RATING_COL,
    DEFAULT_USER_COL,
    RatingStore,
    load_ratings_csv,
    split_ratings,
)
from ratingmf.recommender.training import EpochReport, get_trainer

# Configure module logger
logger = logging.getLogger(__name__)

# Model configuration constants
DEFAULT_ALGORITHM = "sgd"
DEFAULT_N_FACTORS = 10
DEFAULT_RANDOM_STATE = 42
ALGORITHMS = ("batch", "sgd", "wmf")


@dataclass
class TrainingConfig:
    """Everything needed to train a model from a ratings CSV.

    Hyperparameters left as None keep the chosen trainer's defaults. top_n and
    relevance_threshold only matter with a holdout, where they set the cut-off
    and the minimum relevant rating for precision@k and recall@k.
    """

    csv_path: str
    algorithm: str = DEFAULT_ALGORITHM
    n_factors: int = DEFAULT_N_FACTORS
    user_col: str = DEFAULT_USER_COL
    item_col: str = DEFAULT_ITEM_COL
    rating_col: str = DEFAULT_RATING_COL
    learning_rate: Optional[float] = None
    n_epochs: Optional[int] = None
    regularization: Optional[float] = None
    num_reports: Optional[int] = None
    alpha: Optional[float] = None
    negative_sampling_rate: Optional[int] = None
    test_size: float = 0.0
    top_n: int = DEFAULT_TOP_N
    relevance_threshold: float = DEFAULT_RELEVANCE_THRESHOLD
    random_state: Optional[int] = DEFAULT_RANDOM_STATE


@dataclass
class TrainingResult:
    model: MatrixFactorizationModel
    store: RatingStore
    history: List[EpochReport]
    test_data: Dict[Tuple[Hashable, Hashable], float] = field(default_factory=dict)
    metrics: Dict[str, Optional[float]] = field(default_factory=dict)
    baseline_metrics: Dict[str, Optional[float]] = field(default_factory=dict)


def build_model(
    store: RatingStore,
    algorithm: str = DEFAULT_ALGORITHM,
    n_factors: int = DEFAULT_N_FACTORS,
    random_state: Optional[int] = DEFAULT_RANDOM_STATE,
    **hyperparams,
) -> MatrixFactorizationModel:
    """Create an unfitted model with the named trainer.

    Args:
        store: Ratings to learn from.
        algorithm: "batch", "sgd" or "wmf".
        n_factors: Latent dimension.
        random_state: Seed for the trainer's generator.
        **hyperparams: Hyperparameters fields to override; None values keep
            the trainer default.

    Raises:
        ValueError: If the algorithm is unknown or n_factors is not positive.
    """
    trainer = get_trainer(algorithm, random_state=random_state)
    model = MatrixFactorizationModel(store, n_factors=n_factors, trainer=trainer)
    model.hyperparams = model.hyperparams.updated(**hyperparams)
    return model


def train_with_config(config: TrainingConfig) -> TrainingResult:
    """Train (and optionally evaluate) a model as described by ``config``.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
        ValueError: If the data or the configuration is invalid.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {config.algorithm} matrix factorisation training")
    logger.info("=" * 60)

    try:
        store = load_ratings_csv(
            config.csv_path,
            user_col=config.user_col,
            item_col=config.item_col,
            rating_col=config.rating_col,
        )

        test_data = None
        train_store = store
        if config.test_size > 0:
            train_store, test_data = split_ratings(
                store, test_size=config.test_size, random_state=config.random_state
            )

        reg = config.regularization
        model = build_model(
            train_store,
            algorithm=config.algorithm,
            n_factors=config.n_factors,
            random_state=config.random_state,
            learning_rate=config.learning_rate,
            n_epochs=config.n_epochs,
            reg_p=reg,
            reg_q=reg,
            reg_item_bias=reg,
            reg_user_bias=reg,
            num_reports=config.num_reports,
            alpha=config.alpha,
            negative_sampling_rate=config.negative_sampling_rate,
        )
        history = model.fit()
        result = TrainingResult(
            model=model, store=train_store, history=history, test_data=test_data or {}
        )

        if test_data:
            result.metrics = RatingPredictionEvaluator(model, test_data).summary()
            result.metrics.update(
                top_n_metrics(
                    RatingPredictionRecommender(train_store, model),
                    test_data,
                    k=config.top_n,
                    threshold=config.relevance_threshold,
                )
            )
            result.baseline_metrics = RatingPredictionEvaluator(
                ItemMeanPredictor(train_store), test_data
            ).summary()
            logger.info(f"Test metrics: {result.metrics}")
            logger.info(f"Item-mean baseline: {result.baseline_metrics}")

        logger.info("=" * 60)
        logger.info("Training completed successfully!")
        logger.info("=" * 60)
        return result

    except Exception as e:
        logger.error(f"Training failed: {e}", exc_info=True)
        raise


def main() -> None:
    """Main entry point for command-line execution."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        train_with_config(TrainingConfig(csv_path="data/fake_ratings.csv", test_size=0.2))
    except Exception as e:
        logger.error(f"Failed to train model: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
