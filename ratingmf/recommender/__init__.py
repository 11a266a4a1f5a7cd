"""Matrix factorisation engine for RatingMF.

This module contains the rating store, the model state, the three gradient
based trainers (batch, stochastic and weighted/implicit), and the
recommendation and evaluation helpers that consume model predictions.
"""

from ratingmf.recommender.batch import BatchGradientDescentTrainer
from ratingmf.recommender.model import (
    Hyperparameters,
    IdIndex,
    MatrixFactorizationModel,
    ModelState,
)
from ratingmf.recommender.sgd import StochasticGradientDescentTrainer
from ratingmf.recommender.store import RatingStore, load_ratings_csv
from ratingmf.recommender.training import EpochReport, TrainingStrategy, get_trainer
from ratingmf.recommender.weighted import WeightedSGDTrainer

__all__ = [
    "BatchGradientDescentTrainer",
    "EpochReport",
    "Hyperparameters",
    "IdIndex",
    "MatrixFactorizationModel",
    "ModelState",
    "RatingStore",
    "StochasticGradientDescentTrainer",
    "TrainingStrategy",
    "WeightedSGDTrainer",
    "get_trainer",
    "load_ratings_csv",
]
