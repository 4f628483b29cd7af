from datetime import date

import pytest

from market_mapper.errors import InvalidTransformerOptions, TransformError, UnknownTransformer, WarningKind
from market_mapper.transformers import TRANSFORMERS, CategoryOptions, get_transformer
from market_mapper.vocabulary import CATEGORY_PAIRS, CATEGORY_TABLE, VocabularyTable


def run(name, value, options=None):
    return get_transformer(name)(value, options)


def test_registry_names():
    for name in ("toString", "toNumber", "toBoolean", "toPrice", "toDate", "toUrl", "toCategory", "toArray", "toBrand"):
        assert name in TRANSFORMERS
    with pytest.raises(UnknownTransformer):
        get_transformer("toMoney")
    with pytest.raises(TypeError):
        TRANSFORMERS["toMoney"] = TRANSFORMERS["toString"]


def test_none_is_a_transform_error():
    with pytest.raises(TransformError):
        run("toString", None)


def test_to_string():
    assert run("toString", "  Test Shirt ") == "Test Shirt"
    assert run("toString", 15000) == "15000"
    assert run("toString", True) == "true"
    assert run("toString", ["S", "M"]) == "S,M"


def test_to_string_truncates_without_error():
    assert run("toString", "abcdef", {"maxLength": 3}) == "abc"
    assert run("toString", "abc", {"maxLength": 3}) == "abc"


def test_to_string_notes_truncation():
    notes = []
    assert get_transformer("toString")("abcdef", {"maxLength": 3}, notes) == "abc"
    assert notes == [(WarningKind.value_truncated, "cut from 6 to 3 characters")]

    notes = []
    get_transformer("toString")("abc", {"maxLength": 3}, notes)
    assert notes == []


def test_to_number():
    assert run("toNumber", "15000") == 15000
    assert isinstance(run("toNumber", "15000"), int)
    assert run("toNumber", "12.5kg") == 12.5
    assert run("toNumber", 3.0) == 3
    for bad in ("abc", True, float("nan"), "1-2"):
        with pytest.raises(TransformError):
            run("toNumber", bad)


def test_to_boolean():
    assert run("toBoolean", "TRUE") is True
    assert run("toBoolean", " yes ") is True
    assert run("toBoolean", "판매중") is True
    assert run("toBoolean", "0") is False
    assert run("toBoolean", "품절") is False
    assert run("toBoolean", 1) is True
    assert run("toBoolean", False) is False
    for bad in ("maybe", 2):
        with pytest.raises(TransformError):
            run("toBoolean", bad)


def test_to_price():
    assert run("toPrice", "15000") == 15000
    assert run("toPrice", "₩15,000") == 15000
    assert run("toPrice", "15,000원") == 15000
    assert run("toPrice", 19.5) == 20
    assert run("toPrice", "$12.34", {"minorUnitDigits": 2}) == 1234
    assert run("toPrice", 0) == 0


def test_to_price_rejects_negative_and_garbage():
    with pytest.raises(TransformError) as exc:
        run("toPrice", "-5")
    assert "negative" in exc.value.reason
    with pytest.raises(TransformError):
        run("toPrice", "free")


def test_to_date():
    assert run("toDate", "2024-01-05T10:00:00Z") == "2024-01-05"
    assert run("toDate", "2024.01.05") == "2024-01-05"
    assert run("toDate", "2024. 1. 5.") == "2024-01-05"
    assert run("toDate", "2024/01/05") == "2024-01-05"
    assert run("toDate", date(2024, 1, 5), {"format": "korean"}) == "2024. 1. 5."
    assert run("toDate", "2024-01-05 10:30", {"format": "datetime"}) == "2024-01-05T10:30:00"
    with pytest.raises(TransformError):
        run("toDate", "next tuesday")


def test_to_date_timestamps_are_utc_milliseconds():
    assert run("toDate", "1970-01-02", {"format": "timestamp"}) == "86400000"
    assert run("toDate", 86400000, {"format": "timestamp"}) == "86400000"
    assert run("toDate", 0) == "1970-01-01"


def test_to_url():
    assert run("toUrl", "example.com/a.jpg") == "https://example.com/a.jpg"
    assert run("toUrl", "//cdn.example.com/a.png") == "https://cdn.example.com/a.png"
    assert run("toUrl", "HTTP://Example.COM/X.jpg") == "http://example.com/X.jpg"
    assert run("toUrl", "example.com", {"protocol": "http"}) == "http://example.com"
    assert run("toUrl", "http://localhost:8000/img") == "http://localhost:8000/img"
    for bad in ("ftp://example.com/a", "not a url", "http://", "https://nohost"):
        with pytest.raises(TransformError):
            run("toUrl", bad)


def test_to_category():
    assert run("toCategory", "상의") == "tops"
    assert run("toCategory", "tops") == "상의"
    assert run("toCategory", "Tops") == "상의"
    # unknown terms pass through
    assert run("toCategory", "모자") == "모자"
    assert run("toCategory", "셔츠", {"categoryMap": {"셔츠": "shirts"}}) == "shirts"


def test_to_category_round_trips():
    for src, dst in CATEGORY_PAIRS.items():
        assert run("toCategory", src) == dst
        assert run("toCategory", run("toCategory", src)) == src


def test_to_array():
    assert run("toArray", "a,b,a") == ["a", "b", "a"]
    assert run("toArray", "a,b,a", {"unique": True}) == ["a", "b"]
    assert run("toArray", "a| b ||c", {"separator": "|"}) == ["a", "b", "c"]
    assert run("toArray", ["x", " y ", "", None]) == ["x", "y"]


def test_to_brand():
    assert run("toBrand", "zara") == "ZARA"
    assert run("toBrand", " Nike ") == "Nike"
    assert run("toBrand", "Gucci") == "Gucci"
    assert run("toBrand", "Maison Margiela", {"maxLength": 6}) == "Maison"


@pytest.mark.parametrize("name, options", [
    ("toString", {"maxlength": 10}),
    ("toString", {"maxLength": 0}),
    ("toNumber", {"precision": 2}),
    ("toPrice", {"minorUnitDigits": 9}),
    ("toDate", {"format": "unix"}),
    ("toUrl", {"protocol": "ftp"}),
    ("toCategory", {"categoryMap": "colour"}),
    ("toArray", {"separator": ""}),
])
def test_invalid_options_are_rejected(name, options):
    with pytest.raises(InvalidTransformerOptions):
        get_transformer(name).parse_options(options)


def test_options_serialize_back_to_config():
    t = get_transformer("toString")
    assert t.parse_options({"maxLength": 50}).to_config() == {"maxLength": 50}
    assert t.parse_options({}).to_config() == {}
    cat = get_transformer("toCategory")
    assert cat.parse_options({"categoryMap": "category"}).to_config() == {}
    assert cat.parse_options({"categoryMap": {"셔츠": "shirts"}}).to_config() == {"categoryMap": {"셔츠": "shirts"}}
    assert CategoryOptions(categoryMap=VocabularyTable("category", CATEGORY_PAIRS)).to_config() == {}


def test_vocabulary_options_compare_by_content():
    assert CATEGORY_TABLE == VocabularyTable("category", CATEGORY_PAIRS)
    assert CategoryOptions() == CategoryOptions(categoryMap="category")
    assert CategoryOptions() != CategoryOptions(categoryMap={"셔츠": "shirts"})


def test_unmapped_terms_are_noted():
    notes = []
    assert get_transformer("toCategory")("모자", None, notes) == "모자"
    assert notes == [(WarningKind.term_passed_through, "no category mapping for '모자'")]

    notes = []
    assert get_transformer("toCategory")("상의", None, notes) == "tops"
    assert notes == []


def test_to_brand_notes_passthrough_and_truncation():
    notes = []
    assert get_transformer("toBrand")("Maison Margiela", {"maxLength": 6}, notes) == "Maison"
    assert [kind for kind, _ in notes] == [WarningKind.term_passed_through, WarningKind.value_truncated]

    notes = []
    assert get_transformer("toBrand")("zara", None, notes) == "ZARA"
    assert notes == []


def test_transformers_without_notes_ignore_the_list():
    notes = []
    assert get_transformer("toPrice")("₩15,000", None, notes) == 15000
    assert notes == []
