import pytest

from market_mapper.vocabulary import (
    BRAND_TABLE,
    CATEGORY_PAIRS,
    CATEGORY_TABLE,
    VocabularyTable,
    get_table,
)


def test_category_table_is_bijective():
    assert len(CATEGORY_TABLE) == 10
    assert CATEGORY_TABLE.is_bijective()
    assert len(set(CATEGORY_PAIRS.values())) == len(CATEGORY_PAIRS)


def test_translate_works_in_both_directions():
    assert CATEGORY_TABLE.translate("상의") == "tops"
    assert CATEGORY_TABLE.translate("tops") == "상의"
    assert CATEGORY_TABLE.translate("원피스") == "dresses"
    assert CATEGORY_TABLE.translate("dresses") == "원피스"


def test_lookup_is_case_insensitive_but_exact_first():
    assert CATEGORY_TABLE.translate("TOPS") == "상의"
    assert CATEGORY_TABLE.translate("  Shoes ") == "신발"
    assert BRAND_TABLE.lookup("Zara") == "ZARA"
    # full-width letters normalise to ascii
    assert BRAND_TABLE.lookup("ＧＵ") == "GU"


def test_unknown_terms_return_none():
    assert CATEGORY_TABLE.translate("hats") is None
    assert CATEGORY_TABLE.lookup("") is None
    assert "hats" not in CATEGORY_TABLE
    assert "상의" in CATEGORY_TABLE


def test_collisions_are_reported():
    table = VocabularyTable("dupes", {"티셔츠": "tops", "상의": "tops", "바지": "pants"})
    assert not table.is_bijective()
    assert ("tops", ["티셔츠", "상의"]) in table.collisions()
    # first-seen source term wins on the reverse side
    assert table.reverse_lookup("tops") == "티셔츠"


def test_term_on_both_sides_is_a_collision():
    table = VocabularyTable("loop", {"a": "b", "b": "c"})
    assert not table.is_bijective()


def test_table_views_are_read_only():
    with pytest.raises(TypeError):
        CATEGORY_TABLE.forward["모자"] = "hats"
    assert "모자" not in CATEGORY_TABLE


def test_get_table():
    assert get_table("category") is CATEGORY_TABLE
    assert get_table("brand") is BRAND_TABLE
    with pytest.raises(KeyError):
        get_table("colour")


def test_tables_compare_by_name_and_pairs():
    same = VocabularyTable("category", dict(CATEGORY_PAIRS))
    assert same == CATEGORY_TABLE
    assert hash(same) == hash(CATEGORY_TABLE)
    assert VocabularyTable("inline-category", CATEGORY_PAIRS) != CATEGORY_TABLE
    assert VocabularyTable("category", {"상의": "tops"}) != CATEGORY_TABLE
    assert CATEGORY_TABLE != "category"
