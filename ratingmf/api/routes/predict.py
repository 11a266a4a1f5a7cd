"""Prediction and recommendation endpoints for the RatingMF API.

The model is trained in-process from a ratings CSV the first time it is
needed and kept in a module-level cache; there is no persisted model format.
A lock keeps requests from reading the model while it is being (re)trained.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from ratingmf import __version__
from ratingmf.api.metrics import metrics_service
from ratingmf.exceptions import MissingKeyError, ModelNotReadyError
from ratingmf.recommender.infer import DEFAULT_TOP_N, RatingPredictionRecommender
from ratingmf.recommender.train import (
    DEFAULT_ALGORITHM,
    TrainingConfig,
    TrainingResult,
    train_with_config,
)

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(tags=["predictions"])

# Default ratings file the service trains from
DEFAULT_RATINGS_PATH = "data/ratings.csv"
MODEL_VERSION = __version__

_model_cache: Optional[Dict] = None
_model_lock = threading.Lock()


class PredictionResponse(BaseModel):
    """Response model for a single rating prediction."""

    user_id: int = Field(..., description="User ID")
    item_id: int = Field(..., description="Item ID")
    prediction: float = Field(..., description="Predicted rating")
    algorithm: str = Field(..., description="Trainer used to fit the model")


class RecommendationResponse(BaseModel):
    """Response model for recommendation requests."""

    user_id: int = Field(..., description="User ID for recommendations")
    recommendations: List[int] = Field(..., description="Recommended item IDs")
    model_version: str = Field(default=MODEL_VERSION, description="Model version")


class StatusResponse(BaseModel):
    """Response model for the model status endpoint."""

    model_loaded: bool
    algorithm: Optional[str] = None
    num_users: int = 0
    num_items: int = 0
    final_rmse: Optional[float] = None
    timestamp_last_loaded: Optional[str] = None


def _train(ratings_path: str, algorithm: str) -> Dict:
    start_time = time.time()
    try:
        result = train_with_config(
            TrainingConfig(csv_path=ratings_path, algorithm=algorithm)
        )
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to train model from {ratings_path}: {e}")
        raise ModelNotReadyError(ratings_path, e) from e

    final_rmse = result.history[-1].rmse if result.history else None
    metrics_service.record_training((time.time() - start_time) * 1000, final_rmse)

    return {
        "result": result,
        "recommender": RatingPredictionRecommender(result.store, result.model),
        "ratings_path": ratings_path,
        "algorithm": algorithm,
        "loaded_at": datetime.now(timezone.utc).isoformat(),
    }


def load_model_if_needed(
    ratings_path: str = DEFAULT_RATINGS_PATH,
    algorithm: str = DEFAULT_ALGORITHM,
) -> Dict:
    """Return the cached model, training it first if necessary.

    The cache is rebuilt when a different ratings file or algorithm is asked for.

    Raises:
        ModelNotReadyError: If the ratings cannot be loaded or trained on.
    """
    global _model_cache

    with _model_lock:
        if (
            _model_cache is not None
            and _model_cache["ratings_path"] == ratings_path
            and _model_cache["algorithm"] == algorithm
        ):
            logger.debug("Using cached model")
            return _model_cache

        logger.info(f"Training {algorithm} model from {ratings_path}")
        _model_cache = _train(ratings_path, algorithm)
        logger.info("Model trained successfully")
        return _model_cache


def clear_model_cache() -> None:
    global _model_cache
    with _model_lock:
        _model_cache = None


@router.get("/predict/{user_id}/{item_id}", response_model=PredictionResponse)
def get_prediction(
    user_id: int,
    item_id: int,
    ratings_path: str = DEFAULT_RATINGS_PATH,
    algorithm: str = DEFAULT_ALGORITHM,
) -> PredictionResponse:
    """Predict the rating a user would give an item.

    Unknown users or items produce a 404 through the MissingKeyError handler.
    """
    cache = load_model_if_needed(ratings_path, algorithm)
    model = cache["result"].model

    start_time = time.time()
    try:
        prediction = model.predict(user_id, item_id)
    except MissingKeyError:
        metrics_service.record_prediction((time.time() - start_time) * 1000, found=False)
        raise
    metrics_service.record_prediction((time.time() - start_time) * 1000)

    return PredictionResponse(
        user_id=user_id,
        item_id=item_id,
        prediction=prediction,
        algorithm=cache["algorithm"],
    )


@router.get("/recommend/{user_id}", response_model=RecommendationResponse)
def get_recommendations(
    user_id: int,
    top_n: int = DEFAULT_TOP_N,
    ratings_path: str = DEFAULT_RATINGS_PATH,
    algorithm: str = DEFAULT_ALGORITHM,
) -> RecommendationResponse:
    """Get item recommendations for a user.

    Example:
        GET /recommend/42?top_n=5
        Returns the 5 unrated items with the highest predicted rating for user 42.
    """
    logger.info(f"Generating recommendations for user {user_id}, top_n={top_n}")
    cache = load_model_if_needed(ratings_path, algorithm)

    model = cache["result"].model
    if user_id not in model.users:
        raise MissingKeyError("user", user_id)

    recommendations = cache["recommender"].recommend(user_id, top_n=top_n)
    return RecommendationResponse(
        user_id=user_id,
        recommendations=[int(item_id) for item_id in recommendations],
    )


@router.get("/status", response_model=StatusResponse)
def get_status() -> StatusResponse:
    """Report whether a model is trained and what it was trained on."""
    cache = _model_cache
    if cache is None:
        return StatusResponse(model_loaded=False)

    result: TrainingResult = cache["result"]
    return StatusResponse(
        model_loaded=True,
        algorithm=cache["algorithm"],
        num_users=result.model.n_users,
        num_items=result.model.n_items,
        final_rmse=result.history[-1].rmse if result.history else None,
        timestamp_last_loaded=cache["loaded_at"],
    )


@router.post("/reload-model")
def reload_model(
    ratings_path: str = DEFAULT_RATINGS_PATH,
    algorithm: str = DEFAULT_ALGORITHM,
) -> Dict[str, str]:
    """Retrain the model from the ratings file, replacing the cached one."""
    logger.info("Reloading model...")
    clear_model_cache()
    load_model_if_needed(ratings_path, algorithm)
    return {"status": "Model reloaded successfully"}
