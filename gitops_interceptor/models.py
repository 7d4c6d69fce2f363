"""Pydantic models for the ResourcesInterceptor custom resource.

Field aliases follow the camelCase names of the CRD so that manifests can be
loaded as-is. All models are immutable: a policy is shared read-only between
concurrent pushes.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from gitops_interceptor.utils.resource_scope import pluralize_kind


class CommitMode(StrEnum):
    COMMIT = "Commit"
    MERGE_REQUEST = "MergeRequest"


class CommitProcess(StrEnum):
    COMMIT_ONLY = "CommitOnly"
    COMMIT_APPLY = "CommitApply"


class DefaultUnauthorizedUserMode(StrEnum):
    BLOCK = "Block"
    USE_DEFAULT_USER_BIND = "UseDefaultUserBind"


class Operation(StrEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"
    ALL = "*"


class PushedObjectStatus(StrEnum):
    # values are persisted in the CR status, keep them stable
    PUSHED = "Resource correctly pushed"
    PUSH_NOT_ALLOWED = (
        "Error: Push permission is not allowed on this git repository for this user"
    )
    NETWORK_ERROR = "Error: A network error occured"


class CRDModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class NamespaceScopedResources(CRDModel):
    api_groups: list[str] = Field(default_factory=list, alias="apiGroups")
    api_versions: list[str] = Field(default_factory=list, alias="apiVersions")
    resources: list[str] = Field(default_factory=list)
    names: list[str] = Field(default_factory=list)


class NamespaceScopedResourcesPath(CRDModel):
    api_groups: list[str] = Field(default_factory=list, alias="apiGroups")
    api_versions: list[str] = Field(default_factory=list, alias="apiVersions")
    resources: list[str] = Field(default_factory=list)
    names: list[str] = Field(default_factory=list)
    repo_path: str = Field("", alias="repoPath")

    def to_resources(self) -> NamespaceScopedResources:
        return NamespaceScopedResources(
            api_groups=self.api_groups,
            api_versions=self.api_versions,
            resources=self.resources,
            names=self.names,
        )


class NamespaceScopedKinds(CRDModel):
    api_groups: list[str] = Field(default_factory=list, alias="apiGroups")
    api_versions: list[str] = Field(default_factory=list, alias="apiVersions")
    kinds: list[str] = Field(default_factory=list)
    names: list[str] = Field(default_factory=list)

    def to_resources(self) -> NamespaceScopedResources:
        """Translate kinds into resource names, e.g. ``Ingress`` -> ``ingresses``."""
        return NamespaceScopedResources(
            api_groups=self.api_groups,
            api_versions=self.api_versions,
            resources=[pluralize_kind(kind) for kind in self.kinds],
            names=self.names,
        )


class ObjectReference(CRDModel):
    api_version: str = Field("", alias="apiVersion")
    kind: str = ""
    name: str = ""
    namespace: str = ""


class Subject(CRDModel):
    kind: str = ""
    api_group: str = Field("", alias="apiGroup")
    name: str = ""
    namespace: str = ""


class ResourcesInterceptorSpec(CRDModel):
    commit_mode: CommitMode = Field(..., alias="commitMode")
    operations: list[Operation] = Field(..., min_length=1, max_length=3)
    commit_process: CommitProcess = Field(..., alias="commitProcess")
    default_block_applied_message: str = Field(
        "", alias="defaultBlockAppliedMessage"
    )
    remote_repository: str = Field(..., alias="remoteRepository")
    branch: str
    authorized_users: list[ObjectReference] = Field(
        ..., min_length=1, alias="authorizedUsers"
    )
    bypass_interception_subjects: list[Subject] = Field(
        default_factory=list, alias="bypassInterceptionSubjects"
    )
    default_unauthorized_user_mode: DefaultUnauthorizedUserMode = Field(
        ..., alias="defaultUnauthorizedUserMode"
    )
    default_user_bind: ObjectReference | None = Field(None, alias="defaultUserBind")
    included_resources: list[NamespaceScopedResourcesPath] = Field(
        default_factory=list, alias="includedResources"
    )
    excluded_resources: list[NamespaceScopedResources] = Field(
        default_factory=list, alias="excludedResources"
    )
    excluded_fields: list[str] = Field(default_factory=list, alias="excludedFields")


class NamespaceScopedObject(CRDModel):
    api_groups: str = Field("", alias="apiGroups")
    api_versions: str = Field("", alias="apiVersions")
    resources: str = ""
    name: str = ""


class LastBypassedObjectState(CRDModel):
    last_bypassed_object_time: datetime | None = Field(
        None, alias="lastBypassObjectTime"
    )
    last_bypassed_object_subject: Subject | None = Field(
        None, alias="lastBypassObjectSubject"
    )
    last_bypassed_object: NamespaceScopedObject | None = Field(
        None, alias="lastBypassObject"
    )


class LastInterceptedObjectState(CRDModel):
    last_intercepted_object_time: datetime | None = Field(
        None, alias="lastInterceptedObjectTime"
    )
    last_intercepted_object_kubernetes_user: Subject | None = Field(
        None, alias="lastInterceptedObjectKubernetesUser"
    )
    last_intercepted_object: NamespaceScopedObject | None = Field(
        None, alias="lastInterceptedObject"
    )


class LastPushedObjectState(CRDModel):
    last_pushed_object_time: datetime | None = Field(
        None, alias="lastPushedObjectTime"
    )
    last_pushed_git_user_id: str = Field("", alias="lastPushedGitUserID")
    last_pushed_object_git_path: str = Field("", alias="lastPushedObjectGitPath")
    last_pushed_object: NamespaceScopedObject | None = Field(
        None, alias="lastPushedObject"
    )
    last_pushed_object_status: PushedObjectStatus | None = Field(
        None, alias="lastPushedObjectState"
    )


class ResourcesInterceptorStatus(CRDModel):
    last_bypassed_object_state: LastBypassedObjectState = Field(
        default_factory=LastBypassedObjectState, alias="lastBypassedObjectState"
    )
    last_intercepted_object_state: LastInterceptedObjectState = Field(
        default_factory=LastInterceptedObjectState, alias="lastInterceptedObjectState"
    )
    last_pushed_object_state: LastPushedObjectState = Field(
        default_factory=LastPushedObjectState, alias="lastPushedObjectState"
    )


class ObjectMeta(CRDModel):
    name: str
    namespace: str = ""


class ResourcesInterceptor(CRDModel):
    api_version: str = Field("", alias="apiVersion")
    kind: str = "ResourcesInterceptor"
    metadata: ObjectMeta
    spec: ResourcesInterceptorSpec
    status: ResourcesInterceptorStatus = Field(
        default_factory=ResourcesInterceptorStatus
    )


class InterceptedObject(CRDModel):
    """An object caught at admission time, scoped to a single push."""

    group: str = ""
    version: str
    resource: str
    kind: str = ""
    name: str
    namespace: str = ""
    body: str
