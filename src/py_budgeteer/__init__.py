"""Top-level package for py_budgeteer.

The valuation engine lives in ``py_budgeteer.domain``; ``py_budgeteer.sdk``
offers the orchestration facade, snapshot loading and JSON presentation.
"""

from __future__ import annotations

__version__ = "0.4.0"

__all__ = [
    "__version__",
]
