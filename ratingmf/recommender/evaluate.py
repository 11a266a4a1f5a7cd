"""Offline evaluation of rating predictors.

Scores a predictor against held-out ratings (coverage, RMSE, MAE), scores
top-N recommendation lists (precision@k, recall@k), and provides the
item-mean baseline to compare matrix factorisation against.
"""

import logging
import math
from pathlib import Path
from typing import Dict, Hashable, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ratingmf.exceptions import MissingKeyError
from ratingmf.recommender.store import RatingStore

# Configure module logger
logger = logging.getLogger(__name__)

# Tolerance when selecting ratings equal to a target value
RATING_TOLERANCE = 0.0001

Pair = Tuple[Hashable, Hashable]


class ItemMeanPredictor:
    """Baseline that predicts an item's mean rating for every user."""

    def __init__(self, store: RatingStore):
        self.means: Dict[Hashable, float] = {}
        for item_id in store.item_ids:
            profile = store.item_profile(item_id)
            self.means[item_id] = (
                float(np.mean(list(profile.values()))) if profile else 0.0
            )

    def predict(self, user_id: Hashable, item_id: Hashable) -> Optional[float]:
        return self.means.get(item_id)


class RatingPredictionEvaluator:
    """Predictions for a test set and the error metrics over them.

    A pair counts as not predicted when the predictor returns None or raises
    MissingKeyError. Metrics are None when no pair was predicted.
    """

    def __init__(self, predictor, test_data: Dict[Pair, Optional[float]]):
        """Predict every test pair.

        Args:
            predictor: Object with ``predict(user_id, item_id)``.
            test_data: Mapping of (user_id, item_id) to the actual rating,
                or None when the actual rating is unknown.
        """
        self.results: Dict[Pair, Tuple[Optional[float], Optional[float]]] = {}
        for (user_id, item_id), actual in test_data.items():
            try:
                predicted = predictor.predict(user_id, item_id)
            except MissingKeyError:
                predicted = None
            self.results[(user_id, item_id)] = (actual, predicted)

        logger.info(
            f"Evaluated {len(self.results)} pairs, coverage={self.coverage():.2f}%"
        )

    def coverage(self) -> float:
        """Percentage of test pairs that received a prediction."""
        if not self.results:
            return 0.0
        predicted = sum(1 for _, p in self.results.values() if p is not None)
        return predicted * 100.0 / len(self.results)

    def _errors(self, target_rating: Optional[float] = None) -> np.ndarray:
        errors = []
        for actual, predicted in self.results.values():
            if actual is None or predicted is None:
                continue
            if target_rating is not None and abs(actual - target_rating) >= RATING_TOLERANCE:
                continue
            errors.append(actual - predicted)
        return np.asarray(errors, dtype=np.float64)

    def rmse(self, target_rating: Optional[float] = None) -> Optional[float]:
        """Root mean squared error.

        Args:
            target_rating: When given, only pairs whose actual rating equals
                this value are scored.
        """
        errors = self._errors(target_rating)
        if errors.size == 0:
            return None
        return math.sqrt(float(np.mean(errors ** 2)))

    def mae(self) -> Optional[float]:
        """Mean absolute error."""
        errors = self._errors()
        if errors.size == 0:
            return None
        return float(np.mean(np.abs(errors)))

    def summary(self) -> Dict[str, Optional[float]]:
        return {"coverage": self.coverage(), "rmse": self.rmse(), "mae": self.mae()}

    def write_results(self, output_file: str) -> None:
        """Write one ``user item [actual] predicted`` line per predicted pair.

        Raises:
            OSError: If the file cannot be written.
        """
        rows = [
            {"user_id": user_id, "item_id": item_id, "actual": actual, "predicted": predicted}
            for (user_id, item_id), (actual, predicted) in self.results.items()
            if predicted is not None
        ]
        df = pd.DataFrame(rows, columns=["user_id", "item_id", "actual", "predicted"])
        if df["actual"].isna().all():
            df = df.drop(columns=["actual"])

        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output_path, sep=" ", header=False, index=False)
        logger.info(f"Wrote {len(df)} predictions to {output_path}")


# Ratings at or above this count as relevant for top-N metrics
DEFAULT_RELEVANCE_THRESHOLD = 1.0


def _top_n_hits(
    test_profile: Dict[Hashable, float],
    recommendations: Sequence[Hashable],
    k: int,
    threshold: float,
) -> Tuple[int, int]:
    """Count relevant test items and relevant items among the first k recommendations."""
    if k <= 0:
        raise ValueError(f"k must be positive, got {k}")
    actual = np.fromiter(test_profile.values(), dtype=np.float64, count=len(test_profile))
    n_relevant = int(np.count_nonzero(actual >= threshold))
    hits = sum(
        1
        for item_id in recommendations[:k]
        if item_id in test_profile and test_profile[item_id] >= threshold
    )
    return n_relevant, hits


def precision_at_k(
    test_profile: Dict[Hashable, float],
    recommendations: Sequence[Hashable],
    k: int,
    threshold: float = DEFAULT_RELEVANCE_THRESHOLD,
) -> Optional[float]:
    """Share of the k recommendation slots filled with relevant test items.

    The denominator is always k, so a list shorter than k is penalised.

    Args:
        test_profile: The user's held-out ratings, keyed by item id.
        recommendations: Ranked item ids recommended to the user.
        k: Cut-off.
        threshold: Minimum rating for a test item to be relevant.

    Returns:
        Precision in [0, 1], or None when the user has no relevant test item.
    """
    n_relevant, hits = _top_n_hits(test_profile, recommendations, k, threshold)
    if n_relevant == 0:
        return None
    return hits / k


def recall_at_k(
    test_profile: Dict[Hashable, float],
    recommendations: Sequence[Hashable],
    k: int,
    threshold: float = DEFAULT_RELEVANCE_THRESHOLD,
) -> Optional[float]:
    """Share of the user's relevant test items found in the first k recommendations.

    Returns None when the user has no relevant test item.
    """
    n_relevant, hits = _top_n_hits(test_profile, recommendations, k, threshold)
    if n_relevant == 0:
        return None
    return hits / n_relevant


def top_n_metrics(
    recommender,
    test_data: Dict[Pair, float],
    k: int,
    threshold: float = DEFAULT_RELEVANCE_THRESHOLD,
) -> Dict[str, Optional[float]]:
    """Mean precision@k and recall@k over the users in a test set.

    Users without a relevant test item are left out of both means; a mean is
    None when no user is left.

    Args:
        recommender: Object with ``recommend(user_id, top_n)``.
        test_data: Mapping of (user_id, item_id) to the held-out rating.
        k: Cut-off, also the number of items requested per user.
        threshold: Minimum rating for a test item to be relevant.
    """
    profiles: Dict[Hashable, Dict[Hashable, float]] = {}
    for (user_id, item_id), actual in test_data.items():
        if actual is not None:
            profiles.setdefault(user_id, {})[item_id] = actual

    precisions, recalls = [], []
    for user_id, profile in profiles.items():
        recommendations = recommender.recommend(user_id, top_n=k)
        precision = precision_at_k(profile, recommendations, k, threshold)
        if precision is None:
            continue
        precisions.append(precision)
        recalls.append(recall_at_k(profile, recommendations, k, threshold))

    logger.info(f"Top-{k} metrics over {len(precisions)} of {len(profiles)} test users")
    return {
        "precision_at_k": float(np.mean(precisions)) if precisions else None,
        "recall_at_k": float(np.mean(recalls)) if recalls else None,
    }
