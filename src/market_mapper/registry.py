from __future__ import annotations
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from .errors import DuplicateProfile, ProfileNotFound, RegistryFrozen, UnknownMarketplace
from .profiles import MappingProfile, builtin_profiles, iter_profiles


log = logging.getLogger(__name__)


class ProfileRegistry:
    """Lookup of mapping profiles by id and by marketplace.

    Filled once at startup, then frozen. After ``freeze()`` the registry is a
    plain read-only table and can be shared between threads without locking.
    """

    def __init__(self, profiles: Iterable[MappingProfile] = ()):
        self._by_id: Dict[str, MappingProfile] = {}
        self._by_marketplace: Dict[str, List[MappingProfile]] = {}
        self._frozen = False
        for p in profiles:
            self.register(p)

    def register(self, profile: MappingProfile) -> None:
        if self._frozen:
            raise RegistryFrozen(f"Cannot register {profile.id!r}: registry is frozen")
        if not isinstance(profile, MappingProfile):
            raise TypeError(f"Expected MappingProfile, got {type(profile).__name__}")
        if profile.id in self._by_id:
            raise DuplicateProfile(f"Profile id already registered: {profile.id!r}")
        self._by_id[profile.id] = profile
        self._by_marketplace.setdefault(profile.marketplace, []).append(profile)
        log.debug(f"Registered profile {profile.id} ({profile.marketplace}, {len(profile.mappings)} fields)")

    def freeze(self) -> "ProfileRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get_by_id(self, profile_id: str) -> MappingProfile:
        try:
            return self._by_id[profile_id]
        except KeyError:
            raise ProfileNotFound(f"No profile with id {profile_id!r}") from None

    def get_by_marketplace(self, marketplace: str) -> Tuple[MappingProfile, ...]:
        found = self._by_marketplace.get(marketplace)
        if not found:
            raise UnknownMarketplace(f"No profiles for marketplace {marketplace!r}")
        return tuple(found)

    def profiles(self) -> Tuple[MappingProfile, ...]:
        return tuple(self._by_id.values())

    def marketplaces(self) -> List[str]:
        return list(self._by_marketplace)

    def __contains__(self, profile_id: object) -> bool:
        return profile_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)


def build_registry(extra_profile_paths: Iterable[Path] = ()) -> ProfileRegistry:
    """Built-in marketplace profiles plus any JSON profile files, frozen."""
    reg = ProfileRegistry(builtin_profiles())
    for p in iter_profiles(Path(x) for x in extra_profile_paths):
        reg.register(p)
    log.info(f"Loaded {len(reg)} mapping profiles for {len(reg.marketplaces())} marketplaces")
    return reg.freeze()
