# Path: core/__init__.py
# Purpose: Package initializer for core application layer.
# Layer: core.
# Details: Aggregates subpackages for inference, capture, embedders, vector stores, indexing, search, and models.
