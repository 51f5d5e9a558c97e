from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from wcnt.interning import WILDCARD, Handle, StringInterner

pytestmark = pytest.mark.unit


def test_intern_returns_same_handle_for_equal_text() -> None:
    interner = StringInterner()

    first = interner.intern("-Wpedantic")
    second = interner.intern("-Wpedantic")

    assert first == second
    assert interner.lookup(first) == "-Wpedantic"
    assert interner.intern("-Wcomment") != first


def test_wildcard_is_interned_up_front() -> None:
    interner = StringInterner()

    assert interner.lookup(interner.wildcard) == WILDCARD
    assert interner.get(WILDCARD) == interner.wildcard
    assert len(interner) == 1


def test_get_does_not_allocate() -> None:
    interner = StringInterner()

    assert interner.get("missing") is None
    assert len(interner) == 1


def test_lookup_of_foreign_handle_raises_key_error() -> None:
    interner = StringInterner()

    with pytest.raises(KeyError):
        interner.lookup(Handle(42))
    assert interner.lookup_optional(None) is None


def test_concurrent_interning_yields_one_handle_per_text() -> None:
    interner = StringInterner()
    texts = [f"src/file{index % 17}.c" for index in range(2000)]

    with ThreadPoolExecutor(max_workers=8) as executor:
        handles = list(executor.map(interner.intern, texts))

    by_text: dict[str, set[Handle]] = {}
    for text, handle in zip(texts, handles, strict=True):
        by_text.setdefault(text, set()).add(handle)
    assert all(len(found) == 1 for found in by_text.values())
    assert len(interner) == 18
