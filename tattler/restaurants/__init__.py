"""
Restaurant query and mutation engine.

Responsibilities:
- Turn raw filter/sort/page parameters into validated queries.
- Run paged queries, derived-average ranking and proximity searches.
- Create, update and delete restaurants while keeping business ids unique.
- Report every outcome as a typed result instead of raising across layers.
"""
