"""RatingMF: matrix-factorisation rating prediction toolkit.

This package learns latent user and item factors from sparse rating data and
serves point rating predictions and top-N recommendations built on them.

Modules:
    api: FastAPI application and REST API endpoints
    recommender: rating store, model state, trainers, recommendation and evaluation
"""

__version__ = "0.1.0"
