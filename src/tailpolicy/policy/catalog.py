"""
Identifier catalog: the declared tags, groups and named hosts.

Every rule reference is resolved against the catalog by the validator.
Registration errors are fatal; a catalog that cannot be built cannot be
validated meaningfully.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping

import structlog

from tailpolicy.policy.errors import (
    AmbiguousIdentifier,
    CatalogSealedError,
    DuplicateIdentifier,
    InvalidIdentifier,
    UnknownIdentifier,
)
from tailpolicy.policy.principals import (
    GROUP_PREFIX,
    SPECIAL_MARKERS,
    TAG_PREFIX,
    Principal,
    parse_address,
    parse_principal,
)

logger = structlog.get_logger()

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class IdentifierKind(str, Enum):
    TAG = "tag"
    GROUP = "group"
    HOST = "host"


_PREFIXES = {
    IdentifierKind.TAG: TAG_PREFIX,
    IdentifierKind.GROUP: GROUP_PREFIX,
    IdentifierKind.HOST: "",
}


@dataclass(frozen=True)
class TagEntry:
    name: str
    owners: tuple[Principal, ...]

    @property
    def literal(self) -> str:
        return f"{TAG_PREFIX}{self.name}"


@dataclass(frozen=True)
class GroupEntry:
    name: str
    members: tuple[Principal, ...]

    @property
    def literal(self) -> str:
        return f"{GROUP_PREFIX}{self.name}"


@dataclass(frozen=True)
class HostEntry:
    name: str
    address: str

    @property
    def literal(self) -> str:
        return self.name


def _dedupe(principals: Iterable[Principal]) -> tuple[Principal, ...]:
    seen: dict[str, Principal] = {}
    for principal in principals:
        seen.setdefault(principal.raw, principal)
    return tuple(seen.values())


def bare_name(kind: IdentifierKind, name: str) -> str:
    """Strip the kind prefix and check the remaining name.

    Raises:
        InvalidIdentifier: If the name is empty, malformed or reserved.
    """
    text = str(name).strip()
    prefix = _PREFIXES[kind]
    if prefix and text.startswith(prefix):
        text = text[len(prefix):]
    if not text:
        raise InvalidIdentifier(str(name), f"{kind.value.capitalize()} name is required")
    if not _NAME_PATTERN.match(text):
        raise InvalidIdentifier(
            str(name),
            f"Invalid {kind.value} name: '{name}'. Must start with a letter or digit and "
            "contain only letters, digits, '.', '_' and '-'.",
        )
    if text in SPECIAL_MARKERS:
        raise InvalidIdentifier(
            str(name), f"'{text}' is reserved and cannot be used as a {kind.value} name"
        )
    return text


class Catalog:
    """Registry of tags, groups and hosts referenced by policy rules.

    Names are unique per kind and across kinds: rule text tells a tag from
    a group only by its prefix, so a bare name shared between kinds would be
    ambiguous.
    """

    def __init__(self) -> None:
        self._tags: dict[str, TagEntry] = {}
        self._groups: dict[str, GroupEntry] = {}
        self._hosts: dict[str, HostEntry] = {}
        self._kinds: dict[str, IdentifierKind] = {}
        self._sealed = False

    @classmethod
    def from_mappings(
        cls,
        *,
        tag_owners: Mapping[str, Iterable[str]] | None = None,
        groups: Mapping[str, Iterable[str]] | None = None,
        hosts: Mapping[str, str] | None = None,
    ) -> "Catalog":
        """Build a catalog from already-parsed declarations."""
        catalog = cls()
        for name, members in (groups or {}).items():
            catalog.register_group(name, members)
        for name, owners in (tag_owners or {}).items():
            catalog.register_tag(name, owners)
        for name, address in (hosts or {}).items():
            catalog.register_host(name, address)
        return catalog

    def _claim(self, kind: IdentifierKind, name: str) -> str:
        if self._sealed:
            raise CatalogSealedError(f"Cannot register {kind.value} '{name}': catalog is sealed")

        bare = bare_name(kind, name)
        existing = self._kinds.get(bare)
        if existing is kind:
            raise DuplicateIdentifier(
                f"{_PREFIXES[kind]}{bare}",
                f"{kind.value.capitalize()} '{_PREFIXES[kind]}{bare}' is already registered",
            )
        if existing is not None:
            raise AmbiguousIdentifier(
                bare,
                f"Name '{bare}' is already registered as a {existing.value}; "
                f"cannot also register it as a {kind.value}",
            )
        self._kinds[bare] = kind
        return bare

    def register_tag(self, name: str, owners: Iterable[str] = ()) -> TagEntry:
        """Register a tag and the principals allowed to assign it.

        An empty owner list is accepted here; referencing such a tag is
        reported by the validator.
        """
        bare = self._claim(IdentifierKind.TAG, name)
        entry = TagEntry(name=bare, owners=_dedupe(parse_principal(o) for o in owners))
        self._tags[bare] = entry
        logger.debug("catalog_tag_registered", tag=entry.literal, owners=len(entry.owners))
        return entry

    def register_group(self, name: str, members: Iterable[str] = ()) -> GroupEntry:
        bare = self._claim(IdentifierKind.GROUP, name)
        entry = GroupEntry(name=bare, members=_dedupe(parse_principal(m) for m in members))
        self._groups[bare] = entry
        logger.debug("catalog_group_registered", group=entry.literal, members=len(entry.members))
        return entry

    def register_host(self, name: str, address: str) -> HostEntry:
        """Register a named host.

        Raises:
            InvalidAddress: If the address is not an IP address or prefix.
        """
        # Parse first so a bad address does not leave the name claimed
        parsed = parse_address(address)
        bare = self._claim(IdentifierKind.HOST, name)
        entry = HostEntry(name=bare, address=str(address).strip())
        self._hosts[bare] = entry
        logger.debug("catalog_host_registered", host=bare, address=str(parsed))
        return entry

    def exists(self, kind: IdentifierKind | str, name: str) -> bool:
        kind = IdentifierKind(kind)
        prefix = _PREFIXES[kind]
        bare = name[len(prefix):] if prefix and name.startswith(prefix) else name
        return self._kinds.get(bare) is kind

    def owners_of(self, tag: str) -> frozenset[Principal]:
        """Return the owners of a registered tag.

        Raises:
            UnknownIdentifier: If the tag is not registered.
        """
        bare = tag[len(TAG_PREFIX):] if tag.startswith(TAG_PREFIX) else tag
        entry = self._tags.get(bare)
        if entry is None:
            raise UnknownIdentifier(f"{TAG_PREFIX}{bare}", f"Unknown tag '{TAG_PREFIX}{bare}'")
        return frozenset(entry.owners)

    @property
    def tags(self) -> tuple[TagEntry, ...]:
        return tuple(self._tags.values())

    @property
    def groups(self) -> tuple[GroupEntry, ...]:
        return tuple(self._groups.values())

    @property
    def hosts(self) -> tuple[HostEntry, ...]:
        return tuple(self._hosts.values())

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        """Refuse further registration."""
        self._sealed = True

    def __len__(self) -> int:
        return len(self._kinds)
