"""Public SDK layer for py_budgeteer.

Exports:
- engine: Engine facade and its result types
- snapshot: budget and rate-table loaders for mappings and JSON files
- json: JSON presenter helpers (to_dict, to_json)
- errors: public exceptions and map_exception()
"""

__all__ = [
    "engine",
    "snapshot",
    "json",
    "errors",
]
