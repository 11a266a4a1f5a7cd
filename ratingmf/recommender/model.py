"""Model state for matrix factorisation rating prediction.

The model owns the dense latent factor matrices, the bias vectors, the global
bias, the id to row mappings, and the hyperparameters. It has no training
logic of its own: a TrainingStrategy is injected at construction and does the
fitting when fit() is called.

A rating is predicted as

    r_hat(u, i) = global_bias + user_bias[u] + item_bias[i] + P[u] . Q[i]
"""

import enum
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Dict, Hashable, Iterable, List, Optional

import numpy as np

from ratingmf.exceptions import MissingKeyError, TrainingInProgressError
from ratingmf.recommender.store import RatingStore

if TYPE_CHECKING:
    from ratingmf.recommender.training import EpochReport, TrainingStrategy

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_N_FACTORS = 10


class ModelState(enum.Enum):
    """Lifecycle of a model's parameters."""

    UNINITIALIZED = "uninitialized"  # allocated, values meaningless
    TRAINING = "training"
    FITTED = "fitted"


@dataclass
class Hyperparameters:
    """Gradient descent settings shared by all trainers.

    alpha and negative_sampling_rate are only read by the weighted trainer.
    """

    learning_rate: float = 0.01
    n_epochs: int = 200
    reg_p: float = 0.5
    reg_q: float = 0.5
    reg_item_bias: float = 0.5
    reg_user_bias: float = 0.5
    num_reports: int = 10
    alpha: float = 2.0
    negative_sampling_rate: int = 1

    def updated(self, **overrides) -> "Hyperparameters":
        """Copy with the given fields replaced, ignoring None values."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


class IdIndex:
    """Bidirectional table between external ids and contiguous row indices."""

    def __init__(self, ids: Iterable[Hashable], kind: str) -> None:
        self.kind = kind
        self._ids: List[Hashable] = list(ids)
        self._rows: Dict[Hashable, int] = {key: row for row, key in enumerate(self._ids)}

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._rows

    def __iter__(self):
        return iter(self._ids)

    def row(self, key: Hashable) -> int:
        """Row index of an id.

        Raises:
            MissingKeyError: If the id was not present when the index was built.
        """
        try:
            return self._rows[key]
        except KeyError:
            raise MissingKeyError(self.kind, key) from None

    def id_of(self, row: int) -> Hashable:
        return self._ids[row]

    def as_dict(self) -> Dict[Hashable, int]:
        return dict(self._rows)


class MatrixFactorizationModel:
    """Latent factor model with user, item and global biases.

    Example:
        >>> store = RatingStore([(1, 10, 5.0), (1, 20, 3.0), (2, 10, 4.0)])
        >>> model = MatrixFactorizationModel(
        ...     store, 2, StochasticGradientDescentTrainer(random_state=0)
        ... )
        >>> model.fit()
        >>> model.predict(1, 10)
    """

    def __init__(
        self,
        store: RatingStore,
        n_factors: int = DEFAULT_N_FACTORS,
        trainer: Optional["TrainingStrategy"] = None,
    ) -> None:
        """Build row mappings and allocate parameters.

        Args:
            store: Rating store to learn from. Its user and item ids are
                enumerated once here; ids added later are never known.
            n_factors: Latent dimension K.
            trainer: Training strategy used by fit(). Defaults to stochastic
                gradient descent. Its default hyperparameters become the
                model's hyperparameters.
        """
        if trainer is None:
            from ratingmf.recommender.sgd import StochasticGradientDescentTrainer

            trainer = StochasticGradientDescentTrainer()

        self.store = store
        self.trainer = trainer
        self.users = IdIndex(store.user_ids, "user")
        self.items = IdIndex(store.item_ids, "item")
        self.hyperparams = trainer.default_hyperparameters()
        self.history: List["EpochReport"] = []
        self.global_bias = 0.0
        self.set_latent_dim(n_factors)

    @property
    def n_users(self) -> int:
        return len(self.users)

    @property
    def n_items(self) -> int:
        return len(self.items)

    def set_latent_dim(self, n_factors: int) -> None:
        """Reallocate P and Q with a new latent dimension and zero the biases.

        Any previously learned parameters are lost; the model must be refit.
        """
        self._check_not_training("change the latent dimension")
        if n_factors <= 0:
            raise ValueError(f"n_factors must be positive, got {n_factors}")

        self.n_factors = int(n_factors)
        self.P = np.zeros((self.n_users, self.n_factors))
        self.Q = np.zeros((self.n_items, self.n_factors))
        self.user_bias = np.zeros(self.n_users)
        self.item_bias = np.zeros(self.n_items)
        self.global_bias = 0.0
        self.state = ModelState.UNINITIALIZED

    def contains(self, user_id: Hashable, item_id: Hashable) -> bool:
        """True if both ids have rows in the model."""
        return user_id in self.users and item_id in self.items

    def predict(self, user_id: Hashable, item_id: Hashable) -> float:
        """Predicted rating of an item by a user.

        Raises:
            MissingKeyError: If either id is absent from the row mapping.
        """
        u = self.users.row(user_id)
        i = self.items.row(item_id)
        return self.predict_rows(u, i)

    def predict_rows(self, u: int, i: int) -> float:
        """Predicted rating for dense row indices (no id resolution)."""
        return float(
            self.global_bias + self.user_bias[u] + self.item_bias[i] + self.P[u] @ self.Q[i]
        )

    def fit(self) -> List["EpochReport"]:
        """Randomise the parameters and train them with the injected trainer.

        Blocks until every configured epoch has run.

        Returns:
            The epoch reports emitted during this fit.
        """
        self._check_not_training("start a fit")
        self.state = ModelState.TRAINING
        self.history = []
        try:
            reports = self.trainer.fit(self)
        except Exception as e:
            # partially applied parameters are not trustworthy
            self.state = ModelState.UNINITIALIZED
            logger.error(f"Training failed: {e}", exc_info=True)
            raise
        self.state = ModelState.FITTED
        return reports

    # Hyperparameter setters; effective on the next fit.

    def set_learning_rate(self, learning_rate: float) -> None:
        self._set(learning_rate=learning_rate)

    def set_n_epochs(self, n_epochs: int) -> None:
        self._set(n_epochs=n_epochs)

    def set_regularization_weights(self, weight: float) -> None:
        """Use the same regularisation weight for P, Q and both biases."""
        self._set(reg_p=weight, reg_q=weight, reg_item_bias=weight, reg_user_bias=weight)

    def set_reg_weight_p(self, weight: float) -> None:
        self._set(reg_p=weight)

    def set_reg_weight_q(self, weight: float) -> None:
        self._set(reg_q=weight)

    def set_reg_weight_item_bias(self, weight: float) -> None:
        self._set(reg_item_bias=weight)

    def set_reg_weight_user_bias(self, weight: float) -> None:
        self._set(reg_user_bias=weight)

    def set_num_reports(self, num_reports: int) -> None:
        """Number of RMSE reports to emit over a fit (<= 0 disables them)."""
        self._set(num_reports=num_reports)

    def set_alpha(self, alpha: float) -> None:
        self._set(alpha=alpha)

    def set_negative_sampling_rate(self, rate: int) -> None:
        self._set(negative_sampling_rate=rate)

    def _set(self, **values) -> None:
        self._check_not_training("change hyperparameters")
        self.hyperparams = self.hyperparams.updated(**values)

    def _check_not_training(self, operation: str) -> None:
        if getattr(self, "state", None) is ModelState.TRAINING:
            raise TrainingInProgressError(operation)

    def __repr__(self) -> str:
        return (
            f"MatrixFactorizationModel(users={self.n_users}, items={self.n_items}, "
            f"n_factors={self.n_factors}, trainer={self.trainer.name}, "
            f"state={self.state.value})"
        )
