"""Rating store for the matrix factorisation engine.

This module holds the sparse rating data the trainers learn from. Ratings are
kept as per-user and per-item profiles (plain dicts mapping the other id to a
rating) so that both sides can be enumerated cheaply, and helpers are provided
to load ratings from CSV, export them as a scipy sparse matrix, and split off
a holdout set for evaluation.
"""

import logging
from pathlib import Path
from typing import Dict, Hashable, Iterable, Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.sparse import csr_matrix
from sklearn.model_selection import train_test_split

# Configure module logger
logger = logging.getLogger(__name__)

# Default CSV layout (MovieLens style)
DEFAULT_USER_COL = "user_id"
DEFAULT_ITEM_COL = "item_id"
DEFAULT_RATING_COL = "rating"

Rating = Tuple[Hashable, Hashable, float]


class RatingStore:
    """Read-only container of explicit ratings.

    User and item ids enumerate in first-seen order, which is the order the
    model uses to assign dense row indices.
    """

    def __init__(
        self,
        ratings: Iterable[Rating],
        item_ids: Optional[Iterable[Hashable]] = None,
        user_ids: Optional[Iterable[Hashable]] = None,
    ) -> None:
        """Build the store.

        Args:
            ratings: Iterable of (user_id, item_id, rating) triples. A repeated
                (user_id, item_id) pair keeps the last rating.
            item_ids: Optional extra item ids to register even if nobody has
                rated them (they get an empty item profile).
            user_ids: Optional extra user ids to register even if they have
                rated nothing.
        """
        self._user_profiles: Dict[Hashable, Dict[Hashable, float]] = {}
        self._item_profiles: Dict[Hashable, Dict[Hashable, float]] = {}

        for user_id, item_id, rating in ratings:
            value = float(rating)
            self._user_profiles.setdefault(user_id, {})[item_id] = value
            self._item_profiles.setdefault(item_id, {})[user_id] = value

        if item_ids is not None:
            for item_id in item_ids:
                self._item_profiles.setdefault(item_id, {})

        if user_ids is not None:
            for user_id in user_ids:
                self._user_profiles.setdefault(user_id, {})

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        user_col: str = DEFAULT_USER_COL,
        item_col: str = DEFAULT_ITEM_COL,
        rating_col: str = DEFAULT_RATING_COL,
    ) -> "RatingStore":
        """Build a store from a ratings DataFrame.

        Raises:
            ValueError: If required columns are missing or the frame is empty.
        """
        required_columns = {user_col, item_col, rating_col}
        if not required_columns.issubset(df.columns):
            missing = required_columns - set(df.columns)
            raise ValueError(f"Ratings missing required columns: {missing}")

        if df.empty:
            raise ValueError("Cannot build a rating store from empty ratings")

        df = df.dropna(subset=[user_col, item_col, rating_col])
        triples = zip(
            df[user_col].tolist(),
            df[item_col].tolist(),
            df[rating_col].astype(float).tolist(),
        )
        return cls(triples)

    @property
    def user_ids(self) -> List[Hashable]:
        return list(self._user_profiles)

    @property
    def item_ids(self) -> List[Hashable]:
        return list(self._item_profiles)

    @property
    def n_users(self) -> int:
        return len(self._user_profiles)

    @property
    def n_items(self) -> int:
        return len(self._item_profiles)

    @property
    def n_ratings(self) -> int:
        return sum(len(profile) for profile in self._user_profiles.values())

    def __len__(self) -> int:
        return self.n_ratings

    def user_profile(self, user_id: Hashable) -> Dict[Hashable, float]:
        """Ratings given by a user, keyed by item id (empty if unknown)."""
        return self._user_profiles.get(user_id, {})

    def item_profile(self, item_id: Hashable) -> Dict[Hashable, float]:
        """Ratings received by an item, keyed by user id (empty if unknown)."""
        return self._item_profiles.get(item_id, {})

    def triples(self) -> Iterator[Rating]:
        """Iterate over all (user_id, item_id, rating) triples, user by user."""
        for user_id, profile in self._user_profiles.items():
            for item_id, rating in profile.items():
                yield user_id, item_id, rating

    def to_csr(
        self,
        user_row: Dict[Hashable, int],
        item_row: Dict[Hashable, int],
    ) -> csr_matrix:
        """Export ratings as a (n_users x n_items) CSR matrix.

        Args:
            user_row: Mapping from user id to matrix row.
            item_row: Mapping from item id to matrix column.
        """
        rows, cols, data = [], [], []
        for user_id, item_id, rating in self.triples():
            rows.append(user_row[user_id])
            cols.append(item_row[item_id])
            data.append(rating)

        return csr_matrix(
            (
                np.asarray(data, dtype=np.float64),
                (np.asarray(rows, dtype=np.int64), np.asarray(cols, dtype=np.int64)),
            ),
            shape=(len(user_row), len(item_row)),
        )


def load_ratings_csv(
    csv_path: str,
    user_col: str = DEFAULT_USER_COL,
    item_col: str = DEFAULT_ITEM_COL,
    rating_col: str = DEFAULT_RATING_COL,
) -> RatingStore:
    """Load a CSV of explicit ratings into a RatingStore.

    Args:
        csv_path: Path to CSV file containing rating data.
        user_col: Name of the column containing user identifiers.
        item_col: Name of the column containing item identifiers.
        rating_col: Name of the column containing rating values.

    Returns:
        RatingStore with one profile per user and item found in the file.

    Raises:
        FileNotFoundError: If CSV file does not exist.
        ValueError: If CSV is missing required columns or is empty.

    Example:
        >>> store = load_ratings_csv("data/ratings.csv")
        >>> print(f"{store.n_users} users, {store.n_items} items")
    """
    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    logger.info(f"Loading ratings from {csv_path}")
    df = pd.read_csv(csv_path)

    store = RatingStore.from_dataframe(
        df, user_col=user_col, item_col=item_col, rating_col=rating_col
    )

    logger.info(f"Loaded {store.n_ratings} ratings")
    logger.info(f"Unique users: {store.n_users}")
    logger.info(f"Unique items: {store.n_items}")
    if store.n_users and store.n_items:
        density = store.n_ratings / (store.n_users * store.n_items)
        logger.info(f"Rating density: {density:.4%}")

    return store


def split_ratings(
    store: RatingStore,
    test_size: float = 0.2,
    random_state: Optional[int] = None,
) -> Tuple[RatingStore, Dict[Tuple[Hashable, Hashable], float]]:
    """Hold out a share of ratings for evaluation.

    Every user and item of the original store stays registered in the training
    store, so an id whose ratings were all held out is still a known model row.

    Args:
        store: Store to split.
        test_size: Fraction of ratings to move to the test set.
        random_state: Random seed for reproducibility.

    Returns:
        A tuple containing:
            - RatingStore with the remaining training ratings
            - Dictionary mapping (user_id, item_id) to the held-out rating

    Raises:
        ValueError: If the store has too few ratings to split.
    """
    triples = list(store.triples())
    if len(triples) < 2:
        raise ValueError("Need at least two ratings to split into train and test")

    train, test = train_test_split(
        triples,
        test_size=test_size,
        random_state=random_state,
    )

    logger.info(f"Split ratings: train={len(train)} test={len(test)}")

    train_store = RatingStore(train, item_ids=store.item_ids, user_ids=store.user_ids)
    test_data = {(user_id, item_id): rating for user_id, item_id, rating in test}
    return train_store, test_data
