"""Infrastructure layer: external backends and persistence.

- providers: generative text and embedding backends
- stores: persistence interfaces with in-memory implementations
"""
