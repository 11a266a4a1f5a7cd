"""Shared fixtures for the RatingMF tests."""

import sys
from pathlib import Path
from typing import List, Tuple

import pandas as pd
import pytest

# Ensure `import ratingmf` works when the package is not installed.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from ratingmf.recommender.store import RatingStore

SCENARIO_RATINGS: List[Tuple[int, int, float]] = [
    (1, 10, 5.0),
    (1, 20, 3.0),
    (2, 10, 4.0),
    (2, 30, 2.0),
    (3, 20, 5.0),
    (3, 30, 1.0),
]

DENSE_RATINGS: List[Tuple[int, int, float]] = [
    (1, 1, 5.0), (1, 2, 3.0), (1, 3, 4.0),
    (2, 1, 4.0), (2, 2, 2.0), (2, 3, 1.0),
    (3, 1, 1.0), (3, 2, 5.0), (3, 3, 3.0),
]


@pytest.fixture
def scenario_store() -> RatingStore:
    """Three users, three items, six ratings."""
    return RatingStore(SCENARIO_RATINGS)


@pytest.fixture
def dense_store() -> RatingStore:
    """Fully observed 3x3 rating matrix."""
    return RatingStore(DENSE_RATINGS)


@pytest.fixture
def ratings_csv(tmp_path: Path) -> Path:
    """Write the scenario ratings to a CSV file.

    Returns:
        Path to generated CSV file.
    """
    df = pd.DataFrame(SCENARIO_RATINGS, columns=["user_id", "item_id", "rating"])
    csv_path = tmp_path / "ratings.csv"
    df.to_csv(csv_path, index=False)
    return csv_path
