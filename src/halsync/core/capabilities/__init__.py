"""
Capability matching and binding.
"""

from .matcher import Selector, bind_requirements, first_match, match, resolve

__all__ = [
    "Selector",
    "match",
    "resolve",
    "first_match",
    "bind_requirements",
]
