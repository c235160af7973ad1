import pytest

from mmt_backend.features.metadata.tags import dedupe, join_tags, normalize


@pytest.mark.parametrize(
    "value, expected",
    [
        ("a; b, c", ["a", "b", "c"]),
        ("  beach ;; , sunset  ", ["beach", "sunset"]),
        (["x", " y ", "", None, 3], ["x", "y", "3"]),
        (("one", "two"), ["one", "two"]),
        (None, []),
        (42, []),
        ({"a": 1}, []),
        ("", []),
    ],
)
def test_normalize_inputs(value, expected):
    assert normalize(value) == expected


def test_normalize_does_not_split_sequence_items():
    assert normalize(["a;b", "c"]) == ["a;b", "c"]


def test_normalize_drops_case_insensitive_duplicates():
    assert normalize("Beach; beach; BEACH; sand") == ["Beach", "sand"]


def test_dedupe_keeps_first_casing_and_order():
    assert dedupe(["Beach", "Sunset"], ["beach", "Sea"]) == ["Beach", "Sunset", "Sea"]


def test_dedupe_accepts_delimited_strings_and_empty_inputs():
    assert dedupe("a; b", [], None, ["B", "c"]) == ["a", "b", "c"]
    assert dedupe() == []


def test_dedupe_is_idempotent():
    raw = "Zeta; alpha, ALPHA; beta;; zeta"
    once = dedupe(normalize(raw))
    assert dedupe(normalize(once)) == once


def test_join_tags_uses_semicolon_space():
    assert join_tags(["a", "b"]) == "a; b"
    assert join_tags([]) == ""
    assert join_tags(["a", "A", "b"], sep=",") == "a,b"
