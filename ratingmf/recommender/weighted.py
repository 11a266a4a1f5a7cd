"""Weighted matrix factorisation with negative sampling.

Implicit-feedback variant of the stochastic trainer. The absence of a rating
is treated as weak negative evidence: every epoch draws, for each user, up to
``h`` unrated items per rated item and adds them to the training set with
label 0 and confidence 1. Observed ratings keep label 1 and confidence
``1 + alpha * rating``. The model regresses towards the binary label, with
every gradient term scaled by the sample's confidence.
"""

import logging
from typing import TYPE_CHECKING

import numpy as np

from ratingmf.recommender.model import Hyperparameters
from ratingmf.recommender.sampling import draw_without_replacement, negative_samples
from ratingmf.recommender.sgd import sgd_step
from ratingmf.recommender.training import TrainingStrategy, rating_arrays

if TYPE_CHECKING:
    from ratingmf.recommender.model import MatrixFactorizationModel

# Configure module logger
logger = logging.getLogger(__name__)

NEGATIVE_CONFIDENCE = 1.0


def confidence(ratings: np.ndarray, alpha: float) -> np.ndarray:
    """Confidence of observed ratings, c = 1 + alpha * r."""
    return 1.0 + alpha * ratings


class WeightedSGDTrainer(TrainingStrategy):
    """Confidence-weighted SGD over positives plus fresh negative samples."""

    name = "wmf"

    def default_hyperparameters(self) -> Hyperparameters:
        return Hyperparameters(
            learning_rate=0.0001,
            n_epochs=100,
            reg_p=0.5,
            reg_q=0.5,
            reg_item_bias=0.5,
            reg_user_bias=0.5,
            num_reports=100,
            alpha=2.0,
            negative_sampling_rate=1,
        )

    def augmented_samples(self, model: "MatrixFactorizationModel", positives):
        """Positive samples followed by this epoch's negative samples.

        Args:
            model: Model being trained.
            positives: Observed (user_rows, item_rows, ratings) arrays.

        Returns:
            Parallel arrays (user_rows, item_rows, confidences, labels).
        """
        params = model.hyperparams
        users, items, ratings = positives
        negatives = negative_samples(model, params.negative_sampling_rate, self.rng)

        n_neg = len(negatives)
        neg = np.asarray(negatives, dtype=np.int64).reshape(n_neg, 2)
        return (
            np.concatenate([users, neg[:, 0]]),
            np.concatenate([items, neg[:, 1]]),
            np.concatenate(
                [confidence(ratings, params.alpha), np.full(n_neg, NEGATIVE_CONFIDENCE)]
            ),
            np.concatenate([np.ones(len(ratings)), np.zeros(n_neg)]),
        )

    def _run_epochs(self, model: "MatrixFactorizationModel") -> None:
        params = model.hyperparams
        positives = rating_arrays(model)
        n_positive = len(positives[2])

        for epoch in range(params.n_epochs):
            users, items, weights, labels = self.augmented_samples(model, positives)
            order = np.arange(len(labels))
            logger.debug(
                f"Epoch {epoch}: {n_positive} positive, "
                f"{len(labels) - n_positive} negative samples"
            )

            weighted_error = 0.0
            for s in draw_without_replacement(order, self.rng):
                weighted_error += sgd_step(
                    model,
                    int(users[s]),
                    int(items[s]),
                    float(labels[s]),
                    params,
                    weight=float(weights[s]),
                )
            self._end_epoch(epoch, weighted_error, len(order))
