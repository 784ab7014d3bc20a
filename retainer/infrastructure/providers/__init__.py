"""External AI backends (generative text, embeddings)."""
