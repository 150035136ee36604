"""
Writ permission-rule matching core.

Provides the primitives a rule-set owner needs to answer authorization
queries: rule construction, relevance matching, and condition
classification and extraction.
"""

from . import conditions
from . import matcher
from . import rule

__version__ = "1.0.0"

__all__ = [
    "conditions",
    "matcher",
    "rule",
]
