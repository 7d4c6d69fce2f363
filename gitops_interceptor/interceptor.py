"""
Stores intercepted objects in the interceptor's git repository.

This is the entry point used once the admission handler has decided that an
object has to be persisted to git. It prepares the object body, serializes
pushes per target branch, retries pushes that lost a race on the remote and
turns the outcome into the status of the ResourcesInterceptor.
"""

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import (
    UTC,
    datetime,
)

from sretoolbox.utils import retry

from gitops_interceptor.models import (
    InterceptedObject,
    LastPushedObjectState,
    NamespaceScopedObject,
    PushedObjectStatus,
    ResourcesInterceptor,
    ResourcesInterceptorSpec,
)
from gitops_interceptor.utils import metrics
from gitops_interceptor.utils.config import (
    DEFAULT_PUSH_MAX_ATTEMPTS,
    GitIdentity,
)
from gitops_interceptor.utils.excluded_fields import remove_fields
from gitops_interceptor.utils.git_pusher import (
    GitPusher,
    GitPusherError,
    GitPushRejectedError,
    GitPushResponse,
    branch_name,
    classify_error,
)
from gitops_interceptor.utils.resource_scope import (
    ResourceIdentity,
    in_scope,
)
from gitops_interceptor.utils.yaml_body import (
    ObjectBodyError,
    dump_object,
    load_object,
)

_branch_locks: dict[tuple[str, str], threading.Lock] = {}
_branch_locks_guard = threading.Lock()


@dataclass(frozen=True)
class PushResult:
    path: str
    commit_hash: str
    status: PushedObjectStatus | None
    error: str = ""

    @property
    def pushed(self) -> bool:
        return self.status == PushedObjectStatus.PUSHED


def branch_lock(remote_repository: str, branch: str) -> threading.Lock:
    """One outstanding push per remote branch within this process."""
    key = (remote_repository, branch_name(branch))
    with _branch_locks_guard:
        return _branch_locks.setdefault(key, threading.Lock())


def identity_of(obj: InterceptedObject) -> ResourceIdentity:
    return ResourceIdentity(obj.group, obj.version, obj.resource, obj.name)


def should_intercept(spec: ResourcesInterceptorSpec, obj: InterceptedObject) -> bool:
    return in_scope(identity_of(obj), spec.included_resources, spec.excluded_resources)


def prepare_body(body: str, excluded_fields: Iterable[str]) -> str:
    """
    Removes the excluded fields from an object body. Without exclusions the
    body is kept byte for byte.
    """
    excluded_fields = list(excluded_fields)
    if not excluded_fields:
        return body
    data = load_object(body)
    remove_fields(data, excluded_fields)
    return dump_object(data)


def _count_retry(error: Exception) -> None:
    metrics.push_retries.inc()
    logging.warning(f"branch moved on the remote, pushing again: {error}")


def push_intercepted_object(
    spec: ResourcesInterceptorSpec,
    obj: InterceptedObject,
    git_identity: GitIdentity,
    max_attempts: int = DEFAULT_PUSH_MAX_ATTEMPTS,
    now: datetime | None = None,
) -> PushResult:
    now = now or datetime.now(UTC)
    resource = f"{obj.resource} {obj.namespace}/{obj.name}"

    try:
        body = prepare_body(obj.body, spec.excluded_fields)
    except ObjectBodyError as e:
        logging.error(f"can not push {resource}: {e}")
        metrics.push_counter.labels(status=metrics.status_label(None)).inc()
        return PushResult(path="", commit_hash="", status=None, error=str(e))

    @retry(
        exceptions=GitPushRejectedError,
        max_attempts=max_attempts,
        hook=_count_retry,
    )
    def _push() -> GitPushResponse:
        # a fresh clone on every attempt picks up the moved branch
        return GitPusher(
            spec=spec,
            identity=ResourceIdentity(obj.group, obj.version, obj.resource),
            name=obj.name,
            body=body,
            git_user=git_identity.user,
            git_email=git_identity.email,
            git_token=git_identity.token,
            author_date=now,
        ).push()

    with metrics.push_time.time(), branch_lock(spec.remote_repository, spec.branch):
        try:
            response = _push()
        except GitPusherError as e:
            result = PushResult(
                path=e.path,
                commit_hash=e.commit_hash,
                status=classify_error(e),
                error=str(e),
            )
            logging.error(f"can not push {resource}: {e}")
        else:
            result = PushResult(
                path=response.path,
                commit_hash=response.commit_hash,
                status=PushedObjectStatus.PUSHED,
            )
            logging.info(
                f"pushed {resource} to {response.path} "
                f"on {spec.branch} ({response.commit_hash})"
            )

    metrics.push_counter.labels(status=metrics.status_label(result.status)).inc()
    return result


def build_last_pushed_state(
    result: PushResult,
    obj: InterceptedObject,
    git_user: str,
    now: datetime | None = None,
) -> LastPushedObjectState:
    return LastPushedObjectState(
        last_pushed_object_time=now or datetime.now(UTC),
        last_pushed_git_user_id=git_user,
        last_pushed_object_git_path=result.path,
        last_pushed_object=NamespaceScopedObject(
            api_groups=obj.group,
            api_versions=obj.version,
            resources=obj.resource,
            name=obj.name,
        ),
        last_pushed_object_status=result.status,
    )


def record_push(
    interceptor: ResourcesInterceptor, state: LastPushedObjectState
) -> ResourcesInterceptor:
    """Returns a copy of the interceptor carrying the latest push state."""
    status = interceptor.status.model_copy(update={"last_pushed_object_state": state})
    return interceptor.model_copy(update={"status": status})
