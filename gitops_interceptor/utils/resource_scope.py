from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from itertools import product
from typing import TYPE_CHECKING

import inflect

if TYPE_CHECKING:
    from gitops_interceptor.models import (
        NamespaceScopedKinds,
        NamespaceScopedResources,
        NamespaceScopedResourcesPath,
    )

# inflect engines are only read after creation, share one per process
_INFLECT = inflect.engine()


@dataclass(frozen=True)
class ResourceIdentity:
    """
    group/version/resource of a namespaced object, optionally narrowed to a
    single object name. A missing name stands for all objects of that resource.
    """

    group: str
    version: str
    resource: str
    name: str | None = None

    def __str__(self) -> str:
        gvr = "/".join(p for p in (self.group, self.version, self.resource) if p)
        return f"{gvr}/{self.name}" if self.name else gvr

    def without_name(self) -> ResourceIdentity:
        return ResourceIdentity(self.group, self.version, self.resource)


@dataclass(frozen=True)
class KindIdentity:
    group: str
    version: str
    kind: str
    name: str | None = None


def pluralize_kind(kind: str) -> str:
    lowercase = kind.lower()
    if not lowercase:
        return lowercase
    # kinds such as Endpoints are already plural
    singular = _INFLECT.singular_noun(lowercase)
    if singular and _INFLECT.plural_noun(singular) == lowercase:
        return lowercase
    return _INFLECT.plural_noun(lowercase)


def kinds_to_resources(
    rules: Iterable[NamespaceScopedKinds],
) -> list[NamespaceScopedResources]:
    return [rule.to_resources() for rule in rules]


def resources_path_to_resources(
    rules: Iterable[NamespaceScopedResourcesPath],
) -> list[NamespaceScopedResources]:
    return [rule.to_resources() for rule in rules]


def _names_or_wildcard(names: list[str]) -> list[str | None]:
    return list(names) if names else [None]


def resolve_identities(
    rules: Iterable[NamespaceScopedResources | NamespaceScopedResourcesPath],
) -> set[ResourceIdentity]:
    """
    Expands scope rules into the set of identities they select.

    Every group x version x resource combination of a rule is crossed with
    each of its names, or kept without a name if the rule lists none. Empty
    lists expand to nothing. The result has no ordering guarantee, sort it
    if a stable order is needed.
    """
    identities: set[ResourceIdentity] = set()
    for rule in rules:
        for group, version, resource, name in product(
            rule.api_groups,
            rule.api_versions,
            rule.resources,
            _names_or_wildcard(rule.names),
        ):
            identities.add(ResourceIdentity(group, version, resource, name))
    return identities


def resolve_kind_identities(
    rules: Iterable[NamespaceScopedKinds],
) -> set[KindIdentity]:
    identities: set[KindIdentity] = set()
    for rule in rules:
        for group, version, kind, name in product(
            rule.api_groups,
            rule.api_versions,
            rule.kinds,
            _names_or_wildcard(rule.names),
        ):
            identities.add(KindIdentity(group, version, kind, name))
    return identities


def identity_matches(rule: ResourceIdentity, identity: ResourceIdentity) -> bool:
    if (rule.group, rule.version, rule.resource) != (
        identity.group,
        identity.version,
        identity.resource,
    ):
        return False
    return rule.name is None or rule.name == identity.name


def matches_any(
    identity: ResourceIdentity, rule_identities: Iterable[ResourceIdentity]
) -> bool:
    return any(identity_matches(rule, identity) for rule in rule_identities)


def in_scope(
    identity: ResourceIdentity,
    included: Iterable[NamespaceScopedResources | NamespaceScopedResourcesPath]
    | None = None,
    excluded: Iterable[NamespaceScopedResources] | None = None,
) -> bool:
    """
    An object is in scope when it matches at least one included rule and no
    excluded rule. No included rules means every object is included.
    """
    included_identities = resolve_identities(included or [])
    if included_identities and not matches_any(identity, included_identities):
        return False
    return not matches_any(identity, resolve_identities(excluded or []))


def repo_path_for(
    rules: Iterable[NamespaceScopedResourcesPath], identity: ResourceIdentity
) -> str:
    """The repoPath of the first included rule selecting the identity, if any."""
    for rule in rules:
        if not rule.repo_path:
            continue
        if matches_any(identity, resolve_identities([rule])):
            return rule.repo_path
    return ""
