"""Tests for the sampling helpers used by the stochastic trainers."""

from collections import Counter

import numpy as np
import pytest

from ratingmf.recommender.model import MatrixFactorizationModel
from ratingmf.recommender.sampling import (
    draw_without_replacement,
    negative_samples,
    sample_negative_items,
)
from ratingmf.recommender.store import RatingStore
from ratingmf.recommender.training import rating_arrays
from ratingmf.recommender.weighted import WeightedSGDTrainer


@pytest.mark.parametrize("n", [0, 1, 2, 17])
def test_draw_visits_every_sample_once(n: int) -> None:
    """One pass is a permutation of the samples."""
    rng = np.random.default_rng(0)
    order = np.arange(n)

    drawn = list(draw_without_replacement(order, rng))

    assert sorted(drawn) == list(range(n))


def test_draw_is_a_permutation_on_every_pass() -> None:
    """Passes keep working on the permuted order left by the previous pass."""
    rng = np.random.default_rng(3)
    order = np.arange(10)

    first = list(draw_without_replacement(order, rng))
    second = list(draw_without_replacement(order, rng))

    assert sorted(first) == list(range(10))
    assert sorted(second) == list(range(10))
    assert sorted(order.tolist()) == list(range(10))


def test_draw_is_reproducible_with_seed() -> None:
    first = list(draw_without_replacement(np.arange(8), np.random.default_rng(5)))
    second = list(draw_without_replacement(np.arange(8), np.random.default_rng(5)))

    assert first == second


def test_draw_order_is_roughly_uniform() -> None:
    """Each sample lands first about equally often."""
    rng = np.random.default_rng(11)
    firsts = Counter()
    for _ in range(3000):
        firsts[next(draw_without_replacement(np.arange(3), rng))] += 1

    assert set(firsts) == {0, 1, 2}
    assert all(800 < count < 1200 for count in firsts.values())


def test_sample_negative_items_takes_all_when_too_few() -> None:
    rng = np.random.default_rng(0)
    unrated = np.array([4, 7])

    picked = sample_negative_items(unrated, n_rated=3, rate=1, rng=rng)

    assert sorted(picked.tolist()) == [4, 7]


def test_sample_negative_items_samples_without_replacement() -> None:
    rng = np.random.default_rng(0)
    unrated = np.arange(20)

    picked = sample_negative_items(unrated, n_rated=3, rate=2, rng=rng)

    assert len(picked) == 6
    assert len(set(picked.tolist())) == 6
    assert set(picked.tolist()) <= set(range(20))


def test_sample_negative_items_no_ratings_no_negatives() -> None:
    rng = np.random.default_rng(0)

    picked = sample_negative_items(np.arange(5), n_rated=0, rate=1, rng=rng)

    assert len(picked) == 0


def _sampling_store() -> RatingStore:
    # 5 items; user 1 rated 2, user 2 rated 4, user 3 rated none
    ratings = [
        (1, "a", 4.0), (1, "b", 2.0),
        (2, "a", 5.0), (2, "b", 1.0), (2, "c", 3.0), (2, "d", 2.0),
        (4, "e", 3.0),
    ]
    return RatingStore(ratings, user_ids=[3])


def test_negative_sample_counts_per_user() -> None:
    """With h=1 each user gets min(T - |R|, |R|) negatives, none for |R| = 0."""
    model = MatrixFactorizationModel(_sampling_store(), n_factors=2)
    rng = np.random.default_rng(0)

    pairs = negative_samples(model, rate=1, rng=rng)
    per_user = Counter(model.users.id_of(u) for u, _ in pairs)

    assert per_user[1] == 2  # min(5 - 2, 2)
    assert per_user[2] == 1  # min(5 - 4, 4)
    assert per_user[3] == 0
    assert per_user[4] == 1  # min(5 - 1, 1)


def test_negative_samples_are_unrated_and_unique() -> None:
    store = _sampling_store()
    model = MatrixFactorizationModel(store, n_factors=2)
    rng = np.random.default_rng(1)

    pairs = negative_samples(model, rate=5, rng=rng)

    assert len(pairs) == len(set(pairs))
    for u, i in pairs:
        user_id = model.users.id_of(u)
        item_id = model.items.id_of(i)
        assert item_id not in store.user_profile(user_id)


def test_weighted_negatives_have_unit_confidence() -> None:
    """Negatives carry confidence 1 and label 0; positives 1 + alpha * r and label 1."""
    store = _sampling_store()
    trainer = WeightedSGDTrainer(random_state=0)
    model = MatrixFactorizationModel(store, n_factors=2, trainer=trainer)
    model.set_alpha(0.5)
    positives = rating_arrays(model)

    users, items, weights, labels = trainer.augmented_samples(model, positives)

    n_pos = store.n_ratings
    assert len(users) == len(items) == len(weights) == len(labels)
    np.testing.assert_array_equal(labels[:n_pos], np.ones(n_pos))
    np.testing.assert_allclose(weights[:n_pos], 1.0 + 0.5 * positives[2])
    assert (labels[n_pos:] == 0).all()
    assert (weights[n_pos:] == 1.0).all()
    assert len(labels) - n_pos == 4  # 2 + 1 + 0 + 1
