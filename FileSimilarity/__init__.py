"""
FileSimilarity - finds similarly named files using cosine similarity
over the tokens of their names (or contents).
"""

from .errors import InputError
from .similarity.similarity import SimilarityRanker, SimilarityResult, rank_names

__all__ = ["InputError", "SimilarityRanker", "SimilarityResult", "rank_names"]
