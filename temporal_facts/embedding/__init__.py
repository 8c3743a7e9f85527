from .similarity import Embedder, cosine_similarity

__all__ = ["Embedder", "cosine_similarity"]
