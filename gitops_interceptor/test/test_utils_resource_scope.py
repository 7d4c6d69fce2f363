import pytest

from gitops_interceptor.models import (
    NamespaceScopedKinds,
    NamespaceScopedResources,
    NamespaceScopedResourcesPath,
)
from gitops_interceptor.utils.resource_scope import (
    KindIdentity,
    ResourceIdentity,
    identity_matches,
    in_scope,
    kinds_to_resources,
    pluralize_kind,
    repo_path_for,
    resolve_identities,
    resolve_kind_identities,
    resources_path_to_resources,
)

POD = ResourceIdentity("", "v1", "pods", "nginx")
SECRET = ResourceIdentity("", "v1", "secrets", "db-creds")
DEPLOYMENT = ResourceIdentity("apps", "v1", "deployments", "nginx")

SECRETS_RULE = NamespaceScopedResources(
    api_groups=[""], api_versions=["v1"], resources=["secrets"]
)


#
# pluralization
#


@pytest.mark.parametrize(
    "kind, resource",
    [
        ("Pod", "pods"),
        ("Policy", "policies"),
        ("Ingress", "ingresses"),
        ("Deployment", "deployments"),
        ("ConfigMap", "configmaps"),
        ("NetworkPolicy", "networkpolicies"),
        ("Endpoints", "endpoints"),
    ],
)
def test_pluralize_kind(kind: str, resource: str) -> None:
    assert pluralize_kind(kind) == resource


def test_pluralize_kind_empty() -> None:
    assert not pluralize_kind("")


def test_kinds_to_resources() -> None:
    rule = NamespaceScopedKinds(
        api_groups=["networking.k8s.io"],
        api_versions=["v1"],
        kinds=["Ingress", "NetworkPolicy"],
        names=["web"],
    )
    assert kinds_to_resources([rule]) == [
        NamespaceScopedResources(
            api_groups=["networking.k8s.io"],
            api_versions=["v1"],
            resources=["ingresses", "networkpolicies"],
            names=["web"],
        )
    ]


def test_resources_path_to_resources_drops_repo_path() -> None:
    rule = NamespaceScopedResourcesPath(
        api_groups=["apps"],
        api_versions=["v1"],
        resources=["deployments"],
        repo_path="apps/deployments",
    )
    assert resources_path_to_resources([rule]) == [
        NamespaceScopedResources(
            api_groups=["apps"], api_versions=["v1"], resources=["deployments"]
        )
    ]


#
# resolve identities
#


def test_resolve_identities_cross_product() -> None:
    rule = NamespaceScopedResources(
        api_groups=["", "apps"],
        api_versions=["v1"],
        resources=["pods", "deployments"],
        names=["a", "b"],
    )
    identities = resolve_identities([rule])
    assert len(identities) == 8
    assert ResourceIdentity("apps", "v1", "pods", "b") in identities


def test_resolve_identities_without_names_is_wildcard() -> None:
    assert resolve_identities([SECRETS_RULE]) == {
        ResourceIdentity("", "v1", "secrets")
    }


def test_resolve_identities_deduplicates() -> None:
    rule = NamespaceScopedResources(
        api_groups=["apps", "apps"],
        api_versions=["v1"],
        resources=["deployments"],
        names=["nginx", "nginx"],
    )
    assert resolve_identities([rule, rule]) == {DEPLOYMENT}


def test_resolve_identities_names_do_not_leak_between_rules() -> None:
    named = NamespaceScopedResources(
        api_groups=["apps"],
        api_versions=["v1"],
        resources=["deployments"],
        names=["nginx"],
    )
    assert resolve_identities([named, SECRETS_RULE]) == {
        DEPLOYMENT,
        ResourceIdentity("", "v1", "secrets"),
    }


def test_resolve_identities_keeps_named_and_wildcard_entries() -> None:
    named = SECRETS_RULE.model_copy(update={"names": ["db-creds"]})
    assert resolve_identities([named, SECRETS_RULE]) == {
        ResourceIdentity("", "v1", "secrets", "db-creds"),
        ResourceIdentity("", "v1", "secrets"),
    }


def test_resolve_identities_empty_lists() -> None:
    rule = NamespaceScopedResources(
        api_groups=[], api_versions=["v1"], resources=["pods"]
    )
    assert resolve_identities([rule]) == set()
    assert resolve_identities([]) == set()


def test_resolve_identities_from_kinds() -> None:
    rule = NamespaceScopedKinds(
        api_groups=["policy"], api_versions=["v1"], kinds=["PodDisruptionBudget"]
    )
    assert resolve_identities(kinds_to_resources([rule])) == {
        ResourceIdentity("policy", "v1", "poddisruptionbudgets")
    }


def test_resolve_kind_identities() -> None:
    rule = NamespaceScopedKinds(
        api_groups=[""], api_versions=["v1"], kinds=["Pod", "Pod"], names=["a"]
    )
    assert resolve_kind_identities([rule]) == {KindIdentity("", "v1", "Pod", "a")}


#
# matching
#


def test_identity_matches_wildcard_name() -> None:
    assert identity_matches(ResourceIdentity("", "v1", "pods"), POD)


def test_identity_matches_name() -> None:
    assert identity_matches(POD, POD)
    assert not identity_matches(ResourceIdentity("", "v1", "pods", "other"), POD)


def test_identity_matches_exact_gvr() -> None:
    assert not identity_matches(ResourceIdentity("", "v2", "pods"), POD)
    assert not identity_matches(ResourceIdentity("*", "v1", "pods"), POD)


def test_in_scope_without_rules() -> None:
    assert in_scope(POD)
    assert in_scope(POD, [], [])


def test_in_scope_empty_include_list_is_unrestricted() -> None:
    assert in_scope(DEPLOYMENT, [], [SECRETS_RULE])
    assert not in_scope(SECRET, [], [SECRETS_RULE])


def test_in_scope_excluded_wins_over_included() -> None:
    included = [
        NamespaceScopedResourcesPath(
            api_groups=[""], api_versions=["v1"], resources=["secrets", "pods"]
        )
    ]
    assert not in_scope(SECRET, included, [SECRETS_RULE])
    assert in_scope(POD, included, [SECRETS_RULE])


def test_in_scope_not_included() -> None:
    included = [
        NamespaceScopedResourcesPath(
            api_groups=["apps"], api_versions=["v1"], resources=["deployments"]
        )
    ]
    assert in_scope(DEPLOYMENT, included)
    assert not in_scope(POD, included)


def test_in_scope_included_by_name() -> None:
    included = [
        NamespaceScopedResourcesPath(
            api_groups=[""], api_versions=["v1"], resources=["pods"], names=["nginx"]
        )
    ]
    assert in_scope(POD, included)
    assert not in_scope(ResourceIdentity("", "v1", "pods", "redis"), included)


#
# repo path
#


def test_repo_path_for() -> None:
    rules = [
        NamespaceScopedResourcesPath(
            api_groups=["apps"], api_versions=["v1"], resources=["deployments"]
        ),
        NamespaceScopedResourcesPath(
            api_groups=["apps"],
            api_versions=["v1"],
            resources=["deployments"],
            names=["nginx"],
            repo_path="web/nginx.yaml",
        ),
        NamespaceScopedResourcesPath(
            api_groups=["apps"],
            api_versions=["v1"],
            resources=["deployments"],
            repo_path="apps",
        ),
    ]
    assert repo_path_for(rules, DEPLOYMENT) == "web/nginx.yaml"
    assert (
        repo_path_for(rules, ResourceIdentity("apps", "v1", "deployments", "redis"))
        == "apps"
    )
    assert not repo_path_for(rules, POD)


def test_in_scope_excluded_plural_kind() -> None:
    rule = NamespaceScopedKinds(
        api_groups=[""], api_versions=["v1"], kinds=["Endpoints"]
    ).to_resources()
    assert rule.resources == ["endpoints"]
    assert not in_scope(
        ResourceIdentity("", "v1", "endpoints", "kube-dns"), excluded=[rule]
    )
