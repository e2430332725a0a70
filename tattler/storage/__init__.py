"""
Storage layer.

Responsibilities:
- Define the document-store contract consumed by the restaurant services.
- Describe filters as small predicate values the store evaluates.
- Provide an in-process store backed by pandas for scans and aggregation.
- Enforce the unique constraint on the business identifier.
"""
