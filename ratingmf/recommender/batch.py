"""Full-batch gradient descent trainer.

Every epoch computes the gradient over all observed ratings using the
parameters as they stood at the start of the epoch, and applies it in one
step. Each rating's contribution to a user's (item's) update is divided by
that user's (item's) degree, the size of its rating profile, so that very
active users and popular items do not dominate the aggregate gradient.

The update accumulates into a second parameter buffer that starts as a copy
of the current parameters; the buffers are swapped once the epoch is done.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from ratingmf.recommender.model import Hyperparameters
from ratingmf.recommender.training import TrainingStrategy

if TYPE_CHECKING:
    from ratingmf.recommender.model import MatrixFactorizationModel

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass
class ParameterBuffer:
    """One complete copy of the model parameters."""

    P: np.ndarray
    Q: np.ndarray
    user_bias: np.ndarray
    item_bias: np.ndarray
    global_bias: float

    @classmethod
    def from_model(cls, model: "MatrixFactorizationModel") -> "ParameterBuffer":
        return cls(
            P=model.P.copy(),
            Q=model.Q.copy(),
            user_bias=model.user_bias.copy(),
            item_bias=model.item_bias.copy(),
            global_bias=float(model.global_bias),
        )

    def copy(self) -> "ParameterBuffer":
        return ParameterBuffer(
            P=self.P.copy(),
            Q=self.Q.copy(),
            user_bias=self.user_bias.copy(),
            item_bias=self.item_bias.copy(),
            global_bias=self.global_bias,
        )

    def install(self, model: "MatrixFactorizationModel") -> None:
        """Make this buffer the model's live parameters."""
        model.P = self.P
        model.Q = self.Q
        model.user_bias = self.user_bias
        model.item_bias = self.item_bias
        model.global_bias = self.global_bias


class BatchGradientDescentTrainer(TrainingStrategy):
    """Degree-normalised full-batch gradient descent on squared error."""

    name = "batch"

    def default_hyperparameters(self) -> Hyperparameters:
        return Hyperparameters(
            learning_rate=0.01,
            n_epochs=200,
            reg_p=0.5,
            reg_q=0.5,
            reg_item_bias=0.5,
            reg_user_bias=0.5,
            num_reports=100,
        )

    def initialise(self, model: "MatrixFactorizationModel") -> None:
        """Draw every parameter uniformly from [0, 1)."""
        model.P = self.rng.random((model.n_users, model.n_factors))
        model.Q = self.rng.random((model.n_items, model.n_factors))
        model.item_bias = self.rng.random(model.n_items)
        model.user_bias = self.rng.random(model.n_users)
        model.global_bias = float(self.rng.random())

    def _run_epochs(self, model: "MatrixFactorizationModel") -> None:
        params = model.hyperparams
        lr = params.learning_rate

        ratings_matrix = model.store.to_csr(model.users.as_dict(), model.items.as_dict())
        user_degree = ratings_matrix.getnnz(axis=1).astype(np.float64)
        item_degree = ratings_matrix.getnnz(axis=0).astype(np.float64)
        n_ratings = ratings_matrix.nnz

        coo = ratings_matrix.tocoo()
        u, i, r = coo.row, coo.col, coo.data

        # Per-rating step sizes. Only rows that have ratings are ever indexed,
        # so a zero degree never reaches a division.
        user_step = lr / user_degree[u]
        item_step = lr / item_degree[i]
        global_step = lr / (item_degree[i] * user_degree[u])

        logger.debug(
            f"Batch training on {n_ratings} ratings, "
            f"max user degree={int(user_degree.max(initial=0))}, "
            f"max item degree={int(item_degree.max(initial=0))}"
        )

        current = ParameterBuffer.from_model(model)
        for epoch in range(params.n_epochs):
            P_u = current.P[u]
            Q_i = current.Q[i]
            predicted = (
                current.global_bias
                + current.user_bias[u]
                + current.item_bias[i]
                + np.einsum("ij,ij->i", P_u, Q_i)
            )
            error = predicted - r

            # next starts from the current values, not from zero
            nxt = current.copy()
            np.subtract.at(
                nxt.P, u, user_step[:, None] * (error[:, None] * Q_i + params.reg_p * P_u)
            )
            np.subtract.at(
                nxt.Q, i, item_step[:, None] * (error[:, None] * P_u + params.reg_q * Q_i)
            )
            np.subtract.at(
                nxt.item_bias,
                i,
                item_step * (error + params.reg_item_bias * current.item_bias[i]),
            )
            np.subtract.at(
                nxt.user_bias,
                u,
                user_step * (error + params.reg_user_bias * current.user_bias[u]),
            )
            # divided by the product of both degrees, unlike every other term
            nxt.global_bias = current.global_bias - float(np.sum(global_step * error))

            self._end_epoch(epoch, float(np.sum(error * error)), n_ratings)

            nxt.install(model)
            current = nxt
