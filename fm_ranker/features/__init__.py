"""Feature matrix construction for the FM ranking bridge.

Modules
-------
matrix_builder — build_feature_matrix(): tasks + shared facts -> FeatureMatrix
libsvm         — FeatureMatrix -> libsvm text for file-based engines
"""
