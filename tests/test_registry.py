import json

import pytest

from market_mapper.errors import DuplicateProfile, ProfileNotFound, RegistryFrozen, UnknownMarketplace
from market_mapper.profiles import profile_from_dict
from market_mapper.registry import ProfileRegistry, build_registry

from conftest import BASIC_PROFILE


def test_build_registry_has_builtins_and_is_frozen():
    reg = build_registry()
    assert reg.frozen
    assert len(reg) == 4
    assert "naver-shopping" in reg
    assert reg.marketplaces() == ["cafe24", "naver", "coupang", "zigzag"]
    assert reg.get_by_id("zigzag-fashion").marketplace == "zigzag"


def test_frozen_registry_rejects_registration(basic_profile):
    reg = build_registry()
    with pytest.raises(RegistryFrozen):
        reg.register(basic_profile)
    assert "test-basic" not in reg


def test_duplicate_ids_are_rejected(basic_profile):
    reg = ProfileRegistry([basic_profile])
    with pytest.raises(DuplicateProfile):
        reg.register(profile_from_dict(BASIC_PROFILE))


def test_register_type_check():
    reg = ProfileRegistry()
    with pytest.raises(TypeError):
        reg.register(BASIC_PROFILE)


def test_lookup_failures_are_lookup_errors():
    reg = build_registry()
    with pytest.raises(ProfileNotFound):
        reg.get_by_id("gmarket-standard")
    with pytest.raises(LookupError):
        reg.get_by_marketplace("gmarket")
    with pytest.raises(UnknownMarketplace):
        reg.get_by_marketplace("")


def test_marketplace_lookup_keeps_registration_order(basic_profile):
    second = profile_from_dict({**BASIC_PROFILE, "id": "test-second"})
    reg = ProfileRegistry([basic_profile, second]).freeze()
    found = reg.get_by_marketplace("test")
    assert isinstance(found, tuple)
    assert [p.id for p in found] == ["test-basic", "test-second"]
    assert [p.id for p in reg.profiles()] == ["test-basic", "test-second"]


def test_build_registry_with_profile_files(tmp_path):
    path = tmp_path / "extra.json"
    path.write_text(json.dumps(BASIC_PROFILE, ensure_ascii=False), encoding="utf-8")
    reg = build_registry([path])
    assert len(reg) == 5
    assert reg.get_by_marketplace("test")[0].id == "test-basic"


def test_build_registry_rejects_builtin_id_clash(tmp_path):
    path = tmp_path / "clash.json"
    path.write_text(json.dumps({**BASIC_PROFILE, "id": "cafe24-standard"}, ensure_ascii=False), encoding="utf-8")
    with pytest.raises(DuplicateProfile):
        build_registry([str(path)])
