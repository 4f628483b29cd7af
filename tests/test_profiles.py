import copy
import json

import pytest

from market_mapper.errors import (
    DuplicateTargetField,
    InvalidProfile,
    InvalidTransformerOptions,
    InvalidValidatorOptions,
    UnknownTransformer,
    UnknownValidator,
    UnreachableRequiredField,
)
from market_mapper.profiles import (
    BUILTIN_PROFILE_DEFINITIONS,
    FieldMapping,
    builtin_profiles,
    iter_profiles,
    load_profiles_file,
    profile_from_dict,
    profile_to_dict,
)
from market_mapper.transformers import ArrayOptions, StringOptions
from market_mapper.validators import MinLengthOptions, RangeOptions

from conftest import BASIC_PROFILE


def make(**changes):
    d = copy.deepcopy(BASIC_PROFILE)
    d.update(changes)
    return d


def test_builtin_profiles_load():
    profiles = builtin_profiles()
    assert [p.id for p in profiles] == ["cafe24-standard", "naver-shopping", "coupang-seller", "zigzag-fashion"]
    assert [p.marketplace for p in profiles] == ["cafe24", "naver", "coupang", "zigzag"]


def test_builtin_required_fields_are_mapped():
    for p in builtin_profiles():
        assert set(p.metadata.required_fields) <= set(p.target_fields), p.id


def test_builtin_metadata():
    by_id = {p.id: p for p in builtin_profiles()}
    assert by_id["naver-shopping"].metadata.delimiter == "\t"
    assert by_id["cafe24-standard"].metadata.delimiter == ","
    assert by_id["zigzag-fashion"].metadata.extra["fashionSpecific"] is True
    assert by_id["coupang-seller"].metadata.required_fields == ("상품명", "브랜드", "카테고리코드", "판매가", "재고수량", "대표이미지")


def test_options_are_parsed_at_load():
    p = builtin_profiles()[0]
    name = p.mapping_for("상품명")
    assert isinstance(name.options, StringOptions)
    assert name.options.max_length == 100
    images = p.mapping_for("이미지URL")
    assert isinstance(images.options, ArrayOptions)
    assert images.options.unique is True
    assert p.mapping_for("없는필드") is None


def test_field_mapping_is_frozen():
    m = FieldMapping("price", "판매가", "toPrice")
    with pytest.raises(AttributeError):
        m.required = True


def test_unknown_transformer_names_the_field():
    d = make()
    d["mappings"][1]["transformer"] = "toMoney"
    with pytest.raises(UnknownTransformer) as exc:
        profile_from_dict(d)
    assert exc.value.name == "toMoney"
    assert exc.value.target_field == "판매가"


def test_unknown_validator():
    d = make()
    d["mappings"][1]["validator"] = "nonNegative"
    with pytest.raises(UnknownValidator) as exc:
        profile_from_dict(d)
    assert exc.value.target_field == "판매가"


def test_bad_options_fail_at_load():
    d = make()
    d["mappings"][0]["options"] = {"maxLength": "lots"}
    with pytest.raises(InvalidTransformerOptions):
        profile_from_dict(d)


def test_validator_options_are_parsed_at_load():
    d = make()
    d["mappings"][0]["validator"] = "minLength"
    d["mappings"][0]["validatorOptions"] = {"minLength": 2}
    d["mappings"][1]["validator"] = "range"
    d["mappings"][1]["validatorOptions"] = {"min": 100, "max": 1000000}
    p = profile_from_dict(d)
    assert p.mappings[0].validator_options == MinLengthOptions(minLength=2)
    assert isinstance(p.mappings[1].validator_options, RangeOptions)
    assert p.mappings[1].validator_options.max == 1000000
    assert p.mappings[2].validator_options is None

    back = profile_to_dict(p)
    assert back["mappings"][0]["validatorOptions"] == {"minLength": 2}
    assert back["mappings"][1]["validatorOptions"] == {"min": 100, "max": 1000000}
    assert "validatorOptions" not in back["mappings"][2]
    assert profile_to_dict(profile_from_dict(back)) == back


def test_bad_validator_options_fail_at_load():
    d = make()
    d["mappings"][1]["validator"] = "range"
    d["mappings"][1]["validatorOptions"] = {"min": 10, "max": 1}
    with pytest.raises(InvalidValidatorOptions):
        profile_from_dict(d)

    d = make()
    d["mappings"][1]["validatorOptions"] = {"min": 1}
    del d["mappings"][1]["validator"]
    with pytest.raises(InvalidProfile):
        profile_from_dict(d)


def test_duplicate_target_field():
    d = make()
    d["mappings"].append({"sourceField": "title", "targetField": "상품명", "transformer": "toString"})
    with pytest.raises(DuplicateTargetField):
        profile_from_dict(d)


def test_required_field_without_mapping():
    d = make(metadata={"requiredFields": ["상품명", "브랜드"]})
    with pytest.raises(UnreachableRequiredField):
        profile_from_dict(d)


@pytest.mark.parametrize("changes", [
    {"id": ""},
    {"mappings": []},
    {"metadata": {"delimiter": ",;"}},
])
def test_invalid_profiles(changes):
    with pytest.raises(InvalidProfile):
        profile_from_dict(make(**changes))


def test_missing_keys_and_unknown_mapping_keys():
    d = make()
    del d["marketplace"]
    with pytest.raises(InvalidProfile):
        profile_from_dict(d)
    d = make()
    d["mappings"][0]["maxLen"] = 10
    with pytest.raises(InvalidProfile):
        profile_from_dict(d)


def test_snake_case_keys_are_accepted():
    p = profile_from_dict({
        "id": "snake",
        "name": "Snake",
        "marketplace": "test",
        "mappings": [{"source_field": "price", "target_field": "price", "transformer": "toPrice", "default_value": 0}],
        "metadata": {"required_fields": ["price"]},
    })
    assert p.mappings[0].has_default
    assert p.metadata.required_fields == ("price",)


def test_dict_round_trip():
    for d in BUILTIN_PROFILE_DEFINITIONS:
        once = profile_to_dict(profile_from_dict(d))
        twice = profile_to_dict(profile_from_dict(once))
        assert once == twice
        assert [m["targetField"] for m in once["mappings"]] == [m["targetField"] for m in d["mappings"]]


def test_load_profiles_file_shapes(tmp_path):
    single = tmp_path / "single.json"
    single.write_text(json.dumps(BASIC_PROFILE, ensure_ascii=False), encoding="utf-8")
    assert [p.id for p in load_profiles_file(single)] == ["test-basic"]

    other = make(id="test-other")
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"profiles": [other]}, ensure_ascii=False), encoding="utf-8")
    assert [p.id for p in load_profiles_file(wrapped)] == ["test-other"]

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps("nope"), encoding="utf-8")
    with pytest.raises(InvalidProfile):
        load_profiles_file(bad)


def test_iter_profiles_reads_directories_in_name_order(tmp_path):
    (tmp_path / "b.json").write_text(json.dumps(make(id="b")), encoding="utf-8")
    (tmp_path / "a.json").write_text(json.dumps([make(id="a1"), make(id="a2")]), encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
    assert [p.id for p in iter_profiles([tmp_path])] == ["a1", "a2", "b"]
