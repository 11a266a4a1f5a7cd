"""Module for getting recommendations.

Turns point rating predictions into top-N item recommendations.
"""

import logging
import time
from typing import Dict, Hashable, Iterable, List, Optional

from ratingmf.exceptions import MissingKeyError
from ratingmf.recommender.store import RatingStore

# Configure module logger
logger = logging.getLogger(__name__)

# Default parameters
DEFAULT_TOP_N = 10


class RatingPredictionRecommender:
    """Recommends the candidates with the highest predicted rating.

    The predictor is anything with ``predict(user_id, item_id)`` returning a
    float, None when it cannot predict, or raising MissingKeyError.
    """

    def __init__(
        self,
        store: RatingStore,
        predictor,
        candidates: Optional[Iterable[Hashable]] = None,
    ):
        """Initialize the recommender.

        Args:
            store: Ratings used to filter out items a user already rated.
            predictor: Rating predictor, usually a fitted model.
            candidates: Items that may be recommended. Defaults to every item
                in the store.
        """
        self.store = store
        self.predictor = predictor
        self.candidates = list(candidates) if candidates is not None else store.item_ids

    def recommendation_scores(self, user_id: Hashable) -> Dict[Hashable, float]:
        """Predicted rating of every candidate the predictor can score."""
        scores = {}
        for item_id in self.candidates:
            try:
                score = self.predictor.predict(user_id, item_id)
            except MissingKeyError:
                continue
            if score is not None:
                scores[item_id] = score
        return scores

    def recommend(self, user_id: Hashable, top_n: Optional[int] = DEFAULT_TOP_N) -> List[Hashable]:
        """Get recommendations for a user.

        Items the user has already rated and items with a non-positive
        score are left out. Ties keep candidate order.

        Args:
            user_id: User to recommend for.
            top_n: Maximum number of items to return; None returns all.

        Returns:
            Item ids in descending order of predicted rating.
        """
        start_time = time.time()

        scores = self.recommendation_scores(user_id)
        rated = self.store.user_profile(user_id)
        ranked = sorted(
            (item_id for item_id, score in scores.items() if score > 0 and item_id not in rated),
            key=lambda item_id: scores[item_id],
            reverse=True,
        )
        if top_n is not None:
            ranked = ranked[:top_n]

        logger.debug(
            "Computed recommendations",
            extra={
                "user_id": user_id,
                "num_recommendations": len(ranked),
                "compute_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return ranked


def batch_recommend_for_users(
    recommender: RatingPredictionRecommender,
    user_ids: List[Hashable],
    top_n: int = DEFAULT_TOP_N,
) -> Dict[Hashable, List[Hashable]]:
    """Generate recommendations for multiple users.

    Args:
        recommender: Recommender to query.
        user_ids: Users for which to generate recommendations.
        top_n: Number of recommendations per user.

    Returns:
        Dictionary mapping user IDs to their recommended item ID lists.
        Unknown users get an empty list.
    """
    logger.info(
        f"Generating batch recommendations for {len(user_ids)} users, top_n={top_n}"
    )

    results = {}
    for user_id in user_ids:
        results[user_id] = recommender.recommend(user_id, top_n=top_n)

    logger.info(f"Batch recommendations completed for {len(results)} users")
    return results
