"""
Prediction orchestration.

Modules
-------
predict : PredictionPipeline + predict() — build matrix, score, select top-K.
"""
