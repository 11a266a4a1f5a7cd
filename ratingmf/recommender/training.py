"""Training strategy abstraction shared by the matrix factorisation trainers.

Each trainer owns its own seeded random generator, knows its default
hyperparameters, and fits a MatrixFactorizationModel in place. This module
also holds the helpers the trainers have in common: parameter
initialisation, the RMSE report cadence, and conversion of the rating store
into row-index arrays.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple

import numpy as np

from ratingmf.recommender.model import Hyperparameters

if TYPE_CHECKING:
    from ratingmf.recommender.model import MatrixFactorizationModel

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EpochReport:
    """Training error observed during one epoch."""

    epoch: int
    rmse: float


def report_frequency(n_epochs: int, num_reports: int) -> int:
    """Epoch interval between RMSE reports, 0 when reporting is disabled."""
    if num_reports <= 0:
        return 0
    return int(math.ceil(n_epochs / num_reports))


class TrainingStrategy(ABC):
    """Base class for the gradient descent trainers.

    Subclasses implement default_hyperparameters() and _run_epochs(). The
    base class randomises the model parameters, drives the report cadence
    and records the reports on the model.
    """

    name: str = "base"

    def __init__(self, random_state: Optional[int] = None) -> None:
        """Initialize the trainer.

        Args:
            random_state: Seed for this trainer's generator. None draws fresh
                entropy from the OS, so fits are not reproducible.
        """
        self.random_state = random_state
        self.rng = np.random.default_rng(random_state)

    @abstractmethod
    def default_hyperparameters(self) -> Hyperparameters:
        """Hyperparameters a model starts with when built with this trainer."""

    @abstractmethod
    def _run_epochs(self, model: "MatrixFactorizationModel") -> None:
        """Run every configured epoch, calling _end_epoch() after each one."""

    def initialise(self, model: "MatrixFactorizationModel") -> None:
        """Draw starting values for P, Q, biases and the global bias.

        Factors and biases are uniform in [0, 1/sqrt(K)); the global bias is
        uniform in [0, 1).
        """
        scale = 1.0 / math.sqrt(model.n_factors)
        model.P = self.rng.random((model.n_users, model.n_factors)) * scale
        model.Q = self.rng.random((model.n_items, model.n_factors)) * scale
        model.item_bias = self.rng.random(model.n_items) * scale
        model.user_bias = self.rng.random(model.n_users) * scale
        model.global_bias = float(self.rng.random())

    def fit(self, model: "MatrixFactorizationModel") -> List[EpochReport]:
        """Fit the model's parameters in place.

        Returns:
            The RMSE reports emitted at the configured cadence.
        """
        params = model.hyperparams
        logger.info(
            f"Training {self.name} model: users={model.n_users} items={model.n_items} "
            f"ratings={model.store.n_ratings} K={model.n_factors}"
        )
        logger.info(
            f"Learning rate: {params.learning_rate}, Epochs: {params.n_epochs}, "
            f"Random state: {self.random_state}"
        )

        self._reports: List[EpochReport] = []
        self._report_every = report_frequency(params.n_epochs, params.num_reports)
        self.initialise(model)
        self._run_epochs(model)

        model.history.extend(self._reports)
        logger.info("Model training completed")
        return list(self._reports)

    def _end_epoch(self, epoch: int, squared_error: float, n_samples: int) -> None:
        """Record and log the epoch RMSE when the cadence says so."""
        if self._report_every <= 0 or epoch % self._report_every != 0:
            return
        rmse = math.sqrt(squared_error / n_samples) if n_samples else float("nan")
        self._reports.append(EpochReport(epoch=epoch, rmse=rmse))
        logger.info(
            f"Iter={epoch} RMSE={rmse:.6f}",
            extra={"trainer": self.name, "epoch": epoch, "rmse": rmse},
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(random_state={self.random_state})"


def rating_arrays(
    model: "MatrixFactorizationModel",
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Observed ratings as parallel (user_rows, item_rows, ratings) arrays.

    Ratings are listed user by user in store order.
    """
    users, items, ratings = [], [], []
    for user_id, item_id, rating in model.store.triples():
        users.append(model.users.row(user_id))
        items.append(model.items.row(item_id))
        ratings.append(rating)
    return (
        np.asarray(users, dtype=np.int64),
        np.asarray(items, dtype=np.int64),
        np.asarray(ratings, dtype=np.float64),
    )


def get_trainer(name: str, random_state: Optional[int] = None) -> TrainingStrategy:
    """Create a trainer by name: "batch", "sgd" or "wmf".

    Raises:
        ValueError: If the name is not a known trainer.
    """
    from ratingmf.recommender.batch import BatchGradientDescentTrainer
    from ratingmf.recommender.sgd import StochasticGradientDescentTrainer
    from ratingmf.recommender.weighted import WeightedSGDTrainer

    trainers = {
        BatchGradientDescentTrainer.name: BatchGradientDescentTrainer,
        StochasticGradientDescentTrainer.name: StochasticGradientDescentTrainer,
        WeightedSGDTrainer.name: WeightedSGDTrainer,
    }
    try:
        trainer_cls = trainers[name]
    except KeyError:
        raise ValueError(
            f"Unknown trainer '{name}', expected one of {sorted(trainers)}"
        ) from None
    return trainer_cls(random_state=random_state)
