"""Stochastic gradient descent trainer.

The observed ratings are snapshotted into row-index arrays when training
starts. Each epoch visits every rating exactly once in a fresh uniform random
order and updates the touched parameters immediately.
"""

import logging
from typing import TYPE_CHECKING

import numpy as np

from ratingmf.recommender.model import Hyperparameters
from ratingmf.recommender.sampling import draw_without_replacement
from ratingmf.recommender.training import TrainingStrategy, rating_arrays

if TYPE_CHECKING:
    from ratingmf.recommender.model import MatrixFactorizationModel

# Configure module logger
logger = logging.getLogger(__name__)


def sgd_step(
    model: "MatrixFactorizationModel",
    u: int,
    i: int,
    target: float,
    params: Hyperparameters,
    weight: float = 1.0,
) -> float:
    """Apply one gradient step for a single (user, item, target) sample.

    The user row is updated first and the item row's gradient uses the
    updated user row. Every error term is scaled by ``weight``.

    Returns:
        The weighted squared error of the prediction made before the step.
    """
    lr = params.learning_rate
    error = model.predict_rows(u, i) - target
    weighted_error = weight * error

    p_u = model.P[u]
    q_i = model.Q[i]
    p_u -= lr * (weighted_error * q_i + params.reg_p * p_u)
    q_i -= lr * (weighted_error * p_u + params.reg_q * q_i)

    model.item_bias[i] -= lr * (weighted_error + params.reg_item_bias * model.item_bias[i])
    model.user_bias[u] -= lr * (weighted_error + params.reg_user_bias * model.user_bias[u])
    model.global_bias -= lr * weighted_error

    return weight * error * error


class StochasticGradientDescentTrainer(TrainingStrategy):
    """Plain SGD on squared error with L2 regularisation."""

    name = "sgd"

    def default_hyperparameters(self) -> Hyperparameters:
        return Hyperparameters(
            learning_rate=0.01,
            n_epochs=200,
            reg_p=0.5,
            reg_q=0.5,
            reg_item_bias=0.5,
            reg_user_bias=0.5,
            num_reports=10,
        )

    def _run_epochs(self, model: "MatrixFactorizationModel") -> None:
        params = model.hyperparams
        users, items, ratings = rating_arrays(model)
        order = np.arange(len(ratings))
        logger.debug(f"SGD training on {len(order)} samples")

        for epoch in range(params.n_epochs):
            squared_error = 0.0
            for s in draw_without_replacement(order, self.rng):
                squared_error += sgd_step(
                    model, int(users[s]), int(items[s]), float(ratings[s]), params
                )
            self._end_epoch(epoch, squared_error, len(order))
