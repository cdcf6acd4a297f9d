"""HTTP primitives: immutable requests, chainable responses."""
