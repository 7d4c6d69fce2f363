import posixpath
import tempfile
from dataclasses import dataclass
from datetime import (
    UTC,
    datetime,
)
from pathlib import Path
from typing import Any
from urllib.parse import (
    quote,
    urlsplit,
    urlunsplit,
)

from git import (
    Actor,
    GitCommandError,
    PushInfo,
    RemoteProgress,
    Repo,
)
from git.exc import GitError

from gitops_interceptor.models import (
    PushedObjectStatus,
    ResourcesInterceptorSpec,
)
from gitops_interceptor.utils.resource_scope import (
    ResourceIdentity,
    repo_path_for,
)

INVALID_PATH_CHARACTERS = frozenset(':*?"<>|')
YAML_SUFFIXES = (".yaml", ".yml")
HEADS_PREFIX = "refs/heads/"

# never block on a credential prompt, fail the command instead
GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}

AUTHORIZATION_ERROR_MARKERS = (
    "authentication failed",
    "could not read username",
    "could not read password",
    "terminal prompts disabled",
    "access denied",
    "permission denied",
    "not allowed to push",
    "not authorized",
    "unauthorized",
    "forbidden",
    "returned error: 401",
    "returned error: 403",
)


class GitPusherError(Exception):
    def __init__(self, step: str, msg: Any) -> None:
        super().__init__(f"failed to {step}: {msg}")
        self.step = step
        self.reason = str(msg)
        self.path = ""
        self.commit_hash = ""


class InvalidRepoPathError(GitPusherError):
    def __init__(self, path: str, msg: Any = "the path is not valid") -> None:
        super().__init__("validate path", f"{path}: {msg}")


class GitLocalError(GitPusherError):
    """File or object store failures inside the temporary clone."""


class GitTransportError(GitPusherError):
    """The remote could not be reached or did not accept the request."""


class GitPushRejectedError(GitTransportError):
    """The branch moved on the remote, the push is not a fast-forward."""


class GitAuthorizationError(GitPusherError):
    """The remote refused the credentials or the user lacks permissions."""


@dataclass(frozen=True)
class GitPushResponse:
    path: str = ""
    commit_hash: str = ""


@dataclass(frozen=True)
class ResolvedPath:
    path: str
    is_existing_directory: bool


def classify_error(error: Exception) -> PushedObjectStatus | None:
    """
    Maps a pipeline failure to the status reported on the interceptor.
    Validation and local failures have no push status.
    """
    if isinstance(error, GitAuthorizationError):
        return PushedObjectStatus.PUSH_NOT_ALLOWED
    if isinstance(error, GitTransportError):
        return PushedObjectStatus.NETWORK_ERROR
    return None


def is_authorization_error(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in AUTHORIZATION_ERROR_MARKERS)


def with_credentials(url: str, username: str, token: str) -> str:
    """Injects basic auth credentials into http(s) remote URLs."""
    parts = urlsplit(url)
    if parts.scheme not in {"http", "https"} or not token:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    userinfo = f"{quote(username or 'git', safe='')}:{quote(token, safe='')}"
    return urlunsplit(parts._replace(netloc=f"{userinfo}@{host}"))


def branch_name(branch: str) -> str:
    return branch.removeprefix(HEADS_PREFIX)


def default_path(identity: ResourceIdentity, name: str) -> str:
    path = f"{identity.group}/{identity.version}/{identity.resource}/{name}.yaml"
    # core resources have an empty group
    return path.removeprefix("/")


def validate_path(path: str) -> str:
    """
    Lexically cleans a repository path and keeps it inside the worktree.
    Characters that are invalid on common filesystems are rejected.
    """
    if any(char in INVALID_PATH_CHARACTERS for char in path):
        raise InvalidRepoPathError(path)
    parts = [
        p for p in posixpath.normpath(path.replace("\\", "/")).split("/") if p
    ]
    while parts and parts[0] in {".", ".."}:
        parts.pop(0)
    if not parts:
        raise InvalidRepoPathError(path, "the path is empty")
    if parts[0] == ".git":
        raise InvalidRepoPathError(path, "the path points into the git directory")
    return "/".join(parts)


def construct_path(
    spec: ResourcesInterceptorSpec, identity: ResourceIdentity, name: str
) -> str:
    named = ResourceIdentity(identity.group, identity.version, identity.resource, name)
    path = repo_path_for(spec.included_resources, named) or default_path(
        identity, name
    )
    return validate_path(path)


def resolve_target(worktree: Path, path: str, name: str) -> ResolvedPath:
    """
    Decides which file an object is written to.

    An existing directory receives ``<name>.yaml``. An existing file or a
    path ending in ``.yaml``/``.yml`` is used as-is, which lets several
    objects share one file. Anything else becomes a new directory.
    """
    target = worktree / path
    try:
        if target.is_dir():
            return ResolvedPath(posixpath.join(path, f"{name}.yaml"), True)
        if target.is_file() or path.endswith(YAML_SUFFIXES):
            target.parent.mkdir(parents=True, exist_ok=True)
            return ResolvedPath(path, False)
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise GitLocalError("create directory", e) from e
    return ResolvedPath(posixpath.join(path, f"{name}.yaml"), False)


class GitPusher:
    """
    Writes one intercepted object to the interceptor's remote repository.

    Every push works on its own shallow clone in a temporary directory, which
    is removed when push() returns. Concurrent pushes to the same branch are
    not coordinated here: the loser fails with GitPushRejectedError.
    """

    def __init__(
        self,
        spec: ResourcesInterceptorSpec,
        identity: ResourceIdentity,
        name: str,
        body: str,
        git_user: str,
        git_email: str,
        git_token: str,
        author_date: datetime | None = None,
    ) -> None:
        self.spec = spec
        self.identity = identity
        self.name = name
        self.body = body
        self.git_user = git_user
        self.git_email = git_email
        self.git_token = git_token
        self.author_date = author_date
        self.branch = branch_name(spec.branch)

    @property
    def commit_message(self) -> str:
        return f"Add or modify {self.identity.resource} {self.name}"

    def push(self) -> GitPushResponse:
        path = construct_path(self.spec, self.identity, self.name)
        commit_hash = ""
        try:
            with tempfile.TemporaryDirectory(prefix="gitops-interceptor-") as wd:
                repo = self._clone(wd)
                try:
                    worktree = self._worktree(repo)
                    path = resolve_target(worktree, path, self.name).path
                    self._write_file(worktree, path)
                    commit_hash = self._commit(repo, path)
                    self._push(repo)
                finally:
                    repo.close()
        except GitPusherError as e:
            e.path = path
            e.commit_hash = commit_hash
            raise
        return GitPushResponse(path=path, commit_hash=commit_hash)

    def _remote_error(self, step: str, text: str) -> GitPusherError:
        if self.git_token:
            for secret in (self.git_token, quote(self.git_token, safe="")):
                text = text.replace(secret, "*****")
        if is_authorization_error(text):
            return GitAuthorizationError(step, text)
        return GitTransportError(step, text)

    def _clone(self, wd: str) -> Repo:
        url = with_credentials(
            self.spec.remote_repository, self.git_user, self.git_token
        )
        try:
            repo = Repo.clone_from(
                url,
                wd,
                env=GIT_ENV,
                depth=1,
                branch=self.branch,
                single_branch=True,
            )
        except GitCommandError as e:
            raise self._remote_error("clone repository", str(e)) from e
        repo.git.update_environment(**GIT_ENV)
        return repo

    @staticmethod
    def _worktree(repo: Repo) -> Path:
        if not repo.working_tree_dir:
            raise GitLocalError("get worktree", "repository has no working tree")
        return Path(repo.working_tree_dir)

    def _write_file(self, worktree: Path, path: str) -> None:
        try:
            f = open(worktree / path, "wb")  # noqa: SIM115
        except OSError as e:
            raise GitLocalError("create file", e) from e
        with f:
            try:
                f.write(self.body.encode("utf-8"))
            except OSError as e:
                raise GitLocalError("write to file", e) from e

    def _commit(self, repo: Repo, path: str) -> str:
        try:
            repo.index.add([path])
        except (OSError, GitError) as e:
            raise GitLocalError("add file to staging area", e) from e

        when = self.author_date or datetime.now(UTC)
        git_date = f"{int(when.timestamp())} +0000"
        actor = Actor(self.git_user, self.git_email)
        try:
            commit = repo.index.commit(
                self.commit_message,
                author=actor,
                committer=actor,
                author_date=git_date,
                commit_date=git_date,
            )
        except (OSError, GitError, ValueError) as e:
            raise GitLocalError("commit changes", e) from e
        return commit.hexsha

    def _push(self, repo: Repo) -> None:
        progress = RemoteProgress()
        try:
            push_infos = repo.remote("origin").push(
                refspec=f"HEAD:{HEADS_PREFIX}{self.branch}", progress=progress
            )
        except GitCommandError as e:
            details = "\n".join([str(e), *progress.other_lines])
            raise self._remote_error("push changes", details) from e
        except ValueError as e:
            raise GitLocalError("push changes", e) from e

        remote_output = "\n".join(progress.error_lines + progress.other_lines)
        for info in push_infos:
            summary = info.summary.strip()
            if info.flags & PushInfo.REJECTED:
                raise GitPushRejectedError("push changes", summary)
            if info.flags & (PushInfo.REMOTE_REJECTED | PushInfo.ERROR):
                raise self._remote_error(
                    "push changes", f"{summary}\n{remote_output}".strip()
                )
        if push_infos.error is not None:
            raise self._remote_error(
                "push changes", f"{push_infos.error}\n{remote_output}".strip()
            )
        if not push_infos:
            raise GitTransportError("push changes", "the remote reported no result")
