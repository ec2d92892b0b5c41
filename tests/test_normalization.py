import pytest

from stockmirror.matching.normalization import fuzzy_match, normalize_identifier, normalize_text


def test_normalize_identifier_strips_punctuation_and_case():
    assert normalize_identifier(" 0-12345-67890-5 ") == "012345678905"
    assert normalize_identifier("AbC-12") == "abc12"
    assert normalize_identifier(None) == ""
    assert normalize_identifier("") == ""


def test_fuzzy_match_tolerates_padding_and_separators():
    assert fuzzy_match("012345678905", "12345678905")
    assert fuzzy_match("0-12345-67890-5", "012345678905")
    assert fuzzy_match("00042", "42")


def test_fuzzy_match_tolerates_dropped_check_digit():
    assert fuzzy_match("12345678905", "1234567890")


def test_fuzzy_match_rejects_loose_containment():
    assert not fuzzy_match("123", "99912399")
    assert not fuzzy_match("111111", "222222")


def test_fuzzy_match_rejects_empty_values():
    assert not fuzzy_match("", "123")
    assert not fuzzy_match("123", None)
    assert not fuzzy_match("--", "--")


def test_normalize_text():
    assert normalize_text("  Organic  Oat-Milk, 1L ") == "ORGANIC OAT MILK 1L"
    assert normalize_text(None) == ""


IDENTIFIER_PAIRS = [
    ("012345", "12345", True),
    ("12345", "99999", False),
    ("0-12345-67890-5", "012345678905", True),
    ("1234567890", "123456789012", True),
    ("12345678", "123456789012", False),
    ("abc-123", "ABC123", True),
    ("", "12345", False),
    ("000", "0", True),
]


@pytest.mark.parametrize(("left", "right", "expected"), IDENTIFIER_PAIRS)
def test_fuzzy_match_table_is_symmetric(left, right, expected):
    assert fuzzy_match(left, right) is expected
    assert fuzzy_match(right, left) is expected


@pytest.mark.parametrize("value", sorted({value for pair in IDENTIFIER_PAIRS for value in pair[:2]}) + [" Ab-C 9 "])
def test_normalize_identifier_is_idempotent(value):
    once = normalize_identifier(value)
    assert normalize_identifier(once) == once
