"""Random sampling helpers for the stochastic trainers."""

import logging
from typing import TYPE_CHECKING, Iterator, List, Set, Tuple

import numpy as np

if TYPE_CHECKING:
    from ratingmf.recommender.model import MatrixFactorizationModel

# Configure module logger
logger = logging.getLogger(__name__)


def draw_without_replacement(order: np.ndarray, rng: np.random.Generator) -> Iterator[int]:
    """Yield every element of ``order`` exactly once, in uniform random order.

    Fisher-Yates style: with s elements left, draw a position in [0, s), swap
    the drawn element to position s - 1 and yield it. ``order`` is permuted
    in place, so the next call continues from the previous arrangement.
    """
    for s in range(len(order), 0, -1):
        draw = int(rng.integers(s))
        sample = order[draw]
        order[draw] = order[s - 1]
        order[s - 1] = sample
        yield int(sample)


def sample_negative_items(
    unrated: np.ndarray,
    n_rated: int,
    rate: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """Pick negative items for one user.

    Args:
        unrated: Item rows the user has not rated.
        n_rated: Size of the user's rating profile.
        rate: Negative samples wanted per rating (h).
        rng: Generator to draw with.

    Returns:
        All of ``unrated`` when fewer than ``rate * n_rated`` exist, otherwise a
        uniform sample of that many drawn without replacement. A user with no
        ratings gets none.
    """
    wanted = rate * n_rated
    if wanted <= 0:
        return unrated[:0]
    if len(unrated) < wanted:
        return unrated
    return rng.choice(unrated, size=wanted, replace=False)


def negative_samples(
    model: "MatrixFactorizationModel",
    rate: int,
    rng: np.random.Generator,
) -> List[Tuple[int, int]]:
    """Unrated (user_row, item_row) pairs to train on as weak negatives.

    Pairs are deduplicated before they are returned.
    """
    all_items = np.arange(model.n_items)
    seen: Set[Tuple[int, int]] = set()
    pairs: List[Tuple[int, int]] = []

    for user_id in model.users:
        u = model.users.row(user_id)
        profile = model.store.user_profile(user_id)
        rated = np.fromiter(
            (model.items.row(item_id) for item_id in profile),
            dtype=np.int64,
            count=len(profile),
        )
        unrated = np.setdiff1d(all_items, rated, assume_unique=True)

        for i in sample_negative_items(unrated, len(profile), rate, rng):
            pair = (u, int(i))
            if pair not in seen:
                seen.add(pair)
                pairs.append(pair)

    logger.debug(f"Drew {len(pairs)} negative samples at rate {rate}")
    return pairs
