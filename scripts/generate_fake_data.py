"""Generate fake explicit rating data for testing and development.

Ratings are drawn from a hidden low-rank model (user and item taste vectors
plus noise), rounded and clipped to a 1-5 star scale, so matrix factorisation
has real structure to recover.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_data.py

    Or import and use programmatically:
        from scripts.generate_fake_data import generate_fake_ratings
        df = generate_fake_ratings(num_users=100, num_items=200)
"""

from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

# Default configuration constants
DEFAULT_NUM_USERS = 50
DEFAULT_NUM_ITEMS = 100
DEFAULT_NUM_RATINGS = 1000
DEFAULT_RANK = 3
MIN_RATING = 1
MAX_RATING = 5


def generate_fake_ratings(
    num_users: int = DEFAULT_NUM_USERS,
    num_items: int = DEFAULT_NUM_ITEMS,
    num_ratings: int = DEFAULT_NUM_RATINGS,
    rank: int = DEFAULT_RANK,
    noise: float = 0.5,
    random_seed: Optional[int] = None,
) -> pd.DataFrame:
    """Generate synthetic star ratings.

    Args:
        num_users: Number of unique users to simulate. Must be positive.
        num_items: Number of unique items available. Must be positive.
        num_ratings: Number of (user, item) pairs to rate. Capped at
            num_users * num_items since each pair is rated at most once.
        rank: Dimension of the hidden taste vectors.
        noise: Standard deviation of the Gaussian noise added to each rating.
        random_seed: Seed for reproducibility.

    Returns:
        A pandas DataFrame with the following columns:
            - user_id: Integer user identifier (1 to num_users)
            - item_id: Integer item identifier (1 to num_items)
            - rating: Integer rating between 1 and 5

    Raises:
        ValueError: If any numeric parameter is non-positive.
    """
    if num_users <= 0 or num_items <= 0 or num_ratings <= 0 or rank <= 0:
        raise ValueError(
            "num_users, num_items, num_ratings and rank must be positive"
        )

    rng = np.random.default_rng(random_seed)
    num_ratings = min(num_ratings, num_users * num_items)

    user_taste = rng.normal(0.0, 1.0, size=(num_users, rank))
    item_taste = rng.normal(0.0, 1.0, size=(num_items, rank))

    # Sample distinct (user, item) cells
    cells = rng.choice(num_users * num_items, size=num_ratings, replace=False)
    users, items = np.divmod(cells, num_items)

    centre = (MIN_RATING + MAX_RATING) / 2.0
    scores = (
        centre
        + np.einsum("ij,ij->i", user_taste[users], item_taste[items]) / np.sqrt(rank)
        + rng.normal(0.0, noise, size=num_ratings)
    )
    ratings = np.clip(np.rint(scores), MIN_RATING, MAX_RATING).astype(int)

    df = pd.DataFrame({
        "user_id": users + 1,
        "item_id": items + 1,
        "rating": ratings,
    })
    return df.sort_values(["user_id", "item_id"]).reset_index(drop=True)


def main() -> None:
    """Generate fake ratings with default parameters into data/fake_ratings.csv."""
    print(f"Generating {DEFAULT_NUM_RATINGS} fake ratings...")
    print(f"Users: {DEFAULT_NUM_USERS}, Items: {DEFAULT_NUM_ITEMS}")

    try:
        df = generate_fake_ratings(random_seed=42)
    except ValueError as e:
        print(f"Error generating data: {e}")
        return

    data_dir = Path(__file__).parent.parent / "data"
    data_dir.mkdir(exist_ok=True)

    output_path = data_dir / "fake_ratings.csv"
    df.to_csv(output_path, index=False)

    print(f"\nData generated successfully!")
    print(f"Saved to: {output_path}")
    print(f"\nData preview:")
    print(df.head(10))
    print(f"\nData summary:")
    print(f"  Total ratings: {len(df)}")
    print(f"  Unique users: {df['user_id'].nunique()}")
    print(f"  Unique items: {df['item_id'].nunique()}")
    print(f"  Mean rating: {df['rating'].mean():.2f}")


if __name__ == "__main__":
    main()
