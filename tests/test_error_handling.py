"""Tests for error handling in the RatingMF API and model.

Tests various error scenarios including unknown users and items, missing
ratings files, and reconfiguring a model while it trains.
"""

import logging
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from ratingmf.api.main import app
from ratingmf.api.metrics import metrics_service
from ratingmf.api.routes.predict import clear_model_cache
from ratingmf.exceptions import (
    MissingKeyError,
    ModelNotReadyError,
    RatingMFException,
    TrainingInProgressError,
)
from ratingmf.recommender.model import MatrixFactorizationModel, ModelState
from ratingmf.recommender.sgd import StochasticGradientDescentTrainer
from ratingmf.recommender.training import TrainingStrategy

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)

# Create test client
client = TestClient(app)


@pytest.fixture(autouse=True)
def fresh_service():
    clear_model_cache()
    metrics_service.reset()
    yield
    clear_model_cache()


def test_missing_ratings_file_returns_503(tmp_path: Path):
    """A ratings file that does not exist leaves no model to serve."""
    missing = tmp_path / "missing.csv"
    response = client.get("/predict/1/10", params={"ratings_path": str(missing)})

    assert response.status_code == 503
    data = response.json()
    assert "No model available" in data["error"]
    assert data["details"]["error_type"] == "FileNotFoundError"


def test_invalid_ratings_file_returns_503(tmp_path: Path):
    bad_csv = tmp_path / "bad.csv"
    bad_csv.write_text("id,name\n1,test\n")

    response = client.get("/recommend/1", params={"ratings_path": str(bad_csv)})

    assert response.status_code == 503
    assert response.json()["details"]["error_type"] == "ValueError"


def test_unknown_item_returns_404(ratings_csv: Path):
    response = client.get("/predict/1/999", params={"ratings_path": str(ratings_csv)})

    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert data["details"] == {"kind": "item", "id": 999}


def test_unknown_user_returns_404(ratings_csv: Path):
    params = {"ratings_path": str(ratings_csv)}

    predict = client.get("/predict/42/10", params=params)
    recommend = client.get("/recommend/42", params=params)

    assert predict.status_code == 404
    assert recommend.status_code == 404
    assert recommend.json()["details"]["kind"] == "user"


def test_unknown_algorithm_returns_503(ratings_csv: Path):
    response = client.get(
        "/predict/1/10", params={"ratings_path": str(ratings_csv), "algorithm": "als"}
    )

    assert response.status_code == 503
    assert "Unknown trainer" in response.json()["error"]


def test_error_response_structure():
    """Test that validation errors keep FastAPI's response shape."""
    response = client.get("/recommend/not_a_number")

    assert response.status_code == 422
    assert "detail" in response.json()


def test_health_check_not_affected_by_model_errors(tmp_path: Path):
    client.get("/predict/1/10", params={"ratings_path": str(tmp_path / "nope.csv")})

    response = client.get("/ping")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_status_endpoint_with_missing_model(tmp_path: Path):
    client.get("/predict/1/10", params={"ratings_path": str(tmp_path / "nope.csv")})

    response = client.get("/status")

    assert response.status_code == 200
    assert response.json()["model_loaded"] is False


def test_exception_hierarchy():
    missing = MissingKeyError("user", 7)

    assert isinstance(missing, KeyError)
    assert isinstance(missing, RatingMFException)
    assert missing.status_code == 404
    assert str(missing) == missing.message
    assert TrainingInProgressError("fit").status_code == 409
    assert ModelNotReadyError("x.csv").status_code == 503


class ReconfiguringTrainer(StochasticGradientDescentTrainer):
    """Trainer that tries to change the model from inside a fit."""

    def _run_epochs(self, model):
        model.set_learning_rate(0.5)


def test_reconfiguring_during_fit_fails(scenario_store):
    model = MatrixFactorizationModel(scenario_store, 2, ReconfiguringTrainer(random_state=0))

    with pytest.raises(TrainingInProgressError):
        model.fit()

    assert model.state is ModelState.UNINITIALIZED
    assert model.hyperparams.learning_rate == 0.01


class FailingTrainer(TrainingStrategy):
    name = "failing"

    def default_hyperparameters(self):
        return StochasticGradientDescentTrainer().default_hyperparameters()

    def _run_epochs(self, model):
        raise RuntimeError("diverged")


def test_failed_fit_resets_state(scenario_store, caplog):
    model = MatrixFactorizationModel(scenario_store, 2, FailingTrainer(random_state=0))

    with caplog.at_level(logging.ERROR):
        with pytest.raises(RuntimeError, match="diverged"):
            model.fit()

    assert model.state is ModelState.UNINITIALIZED
    assert "Training failed" in caplog.text
