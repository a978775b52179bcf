"""Image encoders.

``image_encoder`` holds the ``ImageFeatureModel`` handle, loaded once at
startup, and the ``EmbeddingExtractor`` that turns one preprocessed tensor
into a vector. Import them from that module; this package stays free of
heavy ML imports.
"""
