"""
Similarity module ranking files by the cosine similarity of their
term-frequency vectors.
"""
