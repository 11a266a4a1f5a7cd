"""FastAPI service for RatingMF.

Trains a matrix factorisation model from a ratings CSV on first use and
serves rating predictions and top-N recommendations from it.
"""
