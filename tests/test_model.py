"""Tests for the matrix factorisation model state."""

import math

import numpy as np
import pytest

from ratingmf.exceptions import MissingKeyError, TrainingInProgressError
from ratingmf.recommender.batch import BatchGradientDescentTrainer
from ratingmf.recommender.model import (
    Hyperparameters,
    IdIndex,
    MatrixFactorizationModel,
    ModelState,
)
from ratingmf.recommender.sgd import StochasticGradientDescentTrainer
from ratingmf.recommender.store import RatingStore
from ratingmf.recommender.weighted import WeightedSGDTrainer


def test_fresh_model_shapes_and_zero_biases(scenario_store: RatingStore) -> None:
    """P is users x K, Q is items x K, biases are zero until a fit."""
    model = MatrixFactorizationModel(scenario_store, n_factors=4)

    assert model.P.shape == (3, 4)
    assert model.Q.shape == (3, 4)
    assert model.user_bias.shape == (3,)
    assert model.item_bias.shape == (3,)
    assert not model.user_bias.any()
    assert not model.item_bias.any()
    assert model.global_bias == 0.0
    assert model.state is ModelState.UNINITIALIZED


def test_row_mapping_is_contiguous_in_store_order(scenario_store: RatingStore) -> None:
    model = MatrixFactorizationModel(scenario_store, n_factors=2)

    assert [model.users.row(u) for u in (1, 2, 3)] == [0, 1, 2]
    assert [model.items.row(i) for i in (10, 20, 30)] == [0, 1, 2]
    assert model.items.id_of(2) == 30


def test_id_index_missing_key() -> None:
    index = IdIndex(["a", "b"], "item")

    assert "a" in index
    assert "z" not in index
    with pytest.raises(MissingKeyError) as exc_info:
        index.row("z")
    assert exc_info.value.kind == "item"
    assert exc_info.value.key == "z"


def test_predict_combines_biases_and_factors(scenario_store: RatingStore) -> None:
    model = MatrixFactorizationModel(scenario_store, n_factors=2)
    model.global_bias = 1.0
    model.user_bias[0] = 0.5
    model.item_bias[1] = -0.25
    model.P[0] = [1.0, 2.0]
    model.Q[1] = [3.0, 0.5]

    assert model.predict(1, 20) == pytest.approx(1.0 + 0.5 - 0.25 + 3.0 + 1.0)


@pytest.mark.parametrize("user_id,item_id", [(99, 10), (1, 99), (99, 99)])
def test_predict_unknown_id_raises_missing_key(
    scenario_store: RatingStore, user_id: int, item_id: int
) -> None:
    """Unknown ids fail loudly instead of returning a value."""
    model = MatrixFactorizationModel(scenario_store, n_factors=2)

    with pytest.raises(MissingKeyError):
        model.predict(user_id, item_id)
    # still a KeyError for callers that expect one
    with pytest.raises(KeyError):
        model.predict(user_id, item_id)


def test_contains(scenario_store: RatingStore) -> None:
    model = MatrixFactorizationModel(scenario_store, n_factors=2)

    assert model.contains(1, 10)
    assert not model.contains(1, 40)


def test_set_latent_dim_reallocates_and_resets(scenario_store: RatingStore) -> None:
    model = MatrixFactorizationModel(
        scenario_store, n_factors=2, trainer=StochasticGradientDescentTrainer(random_state=0)
    )
    model.set_n_epochs(5)
    model.fit()
    assert model.state is ModelState.FITTED

    model.set_latent_dim(5)

    assert model.P.shape == (3, 5)
    assert model.Q.shape == (3, 5)
    assert not model.user_bias.any()
    assert not model.item_bias.any()
    assert model.global_bias == 0.0
    assert model.state is ModelState.UNINITIALIZED


def test_set_latent_dim_rejects_non_positive(scenario_store: RatingStore) -> None:
    with pytest.raises(ValueError):
        MatrixFactorizationModel(scenario_store, n_factors=0)


def test_trainer_defaults_become_model_hyperparameters(scenario_store: RatingStore) -> None:
    batch = MatrixFactorizationModel(scenario_store, 2, BatchGradientDescentTrainer())
    sgd = MatrixFactorizationModel(scenario_store, 2, StochasticGradientDescentTrainer())
    wmf = MatrixFactorizationModel(scenario_store, 2, WeightedSGDTrainer())

    assert batch.hyperparams.num_reports == 100
    assert batch.hyperparams.n_epochs == 200
    assert sgd.hyperparams.num_reports == 10
    assert sgd.hyperparams.learning_rate == 0.01
    assert wmf.hyperparams.learning_rate == 0.0001
    assert wmf.hyperparams.n_epochs == 100
    assert wmf.hyperparams.alpha == 2.0
    assert wmf.hyperparams.negative_sampling_rate == 1


def test_setters_update_hyperparameters(scenario_store: RatingStore) -> None:
    model = MatrixFactorizationModel(scenario_store, n_factors=2)

    model.set_learning_rate(0.05)
    model.set_n_epochs(7)
    model.set_regularization_weights(0.1)
    model.set_reg_weight_q(0.2)
    model.set_reg_weight_user_bias(0.3)
    model.set_num_reports(0)
    model.set_alpha(4.0)
    model.set_negative_sampling_rate(3)

    assert model.hyperparams == Hyperparameters(
        learning_rate=0.05,
        n_epochs=7,
        reg_p=0.1,
        reg_q=0.2,
        reg_item_bias=0.1,
        reg_user_bias=0.3,
        num_reports=0,
        alpha=4.0,
        negative_sampling_rate=3,
    )


def test_setters_refused_during_training(scenario_store: RatingStore) -> None:
    model = MatrixFactorizationModel(scenario_store, n_factors=2)
    model.state = ModelState.TRAINING

    with pytest.raises(TrainingInProgressError):
        model.set_learning_rate(0.1)
    with pytest.raises(TrainingInProgressError):
        model.set_latent_dim(3)
    with pytest.raises(TrainingInProgressError):
        model.fit()


def test_refit_rerandomises_parameters(scenario_store: RatingStore) -> None:
    """A second fit starts again from fresh random values."""
    model = MatrixFactorizationModel(
        scenario_store, n_factors=2, trainer=StochasticGradientDescentTrainer(random_state=1)
    )
    model.set_n_epochs(3)
    model.fit()
    first = model.P.copy()

    model.fit()

    assert model.state is ModelState.FITTED
    assert not np.array_equal(first, model.P)


def test_predictions_finite_after_fit(scenario_store: RatingStore) -> None:
    model = MatrixFactorizationModel(
        scenario_store, n_factors=2, trainer=StochasticGradientDescentTrainer(random_state=2)
    )
    model.set_n_epochs(20)
    model.fit()

    for user_id in scenario_store.user_ids:
        for item_id in scenario_store.item_ids:
            assert math.isfinite(model.predict(user_id, item_id))
