from .interner import WILDCARD, Handle, StringInterner

__all__ = [
    "Handle",
    "StringInterner",
    "WILDCARD",
]
