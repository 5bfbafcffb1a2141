"""Database layer — models, sessions and the ownership store."""
