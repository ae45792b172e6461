"""
Domain models for the FM ranking bridge.

Modules
-------
matrix  : FeatureNode / FeatureRow / FeatureMatrix — the sparse engine input.
request : Fact + PredictionRequest — validated caller input (pydantic).
result  : ScoredCandidate + RankedResult — ranked output.
"""
