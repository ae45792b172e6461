"""
Ranking of scored candidates.

Modules
-------
top_k : select_top_k() — partial sort + truncation to the requested size.
"""
