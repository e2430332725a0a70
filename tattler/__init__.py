"""
Tattler restaurant directory.

Responsibilities:
- Normalize loosely-typed filter, sort and page parameters into normalized queries.
- Execute listings, searches, average-score ranking and proximity queries.
- Guard writes with structural validation and business-id uniqueness.
"""
