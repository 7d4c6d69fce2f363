import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from git import (
    Actor,
    Repo,
)

from gitops_interceptor.models import ResourcesInterceptorSpec
from gitops_interceptor.utils.config import GitIdentity

SEED_AUTHOR = Actor("seed", "seed@example.com")


@pytest.fixture
def patch_sleep(mocker):
    yield mocker.patch.object(time, "sleep")


@pytest.fixture
def spec_builder() -> Callable[..., ResourcesInterceptorSpec]:
    """
    Builds a valid interceptor spec, keyword arguments use the CRD field
    names and override the defaults:

        spec_builder(branch="develop", excludedFields=["status"])
    """

    def builder(**overrides: Any) -> ResourcesInterceptorSpec:
        data: dict[str, Any] = {
            "commitMode": "Commit",
            "operations": ["CREATE", "UPDATE"],
            "commitProcess": "CommitOnly",
            "remoteRepository": "https://git.example.com/cluster-state.git",
            "branch": "main",
            "authorizedUsers": [{"name": "gitops-bot"}],
            "defaultUnauthorizedUserMode": "Block",
        }
        data.update(overrides)
        return ResourcesInterceptorSpec.model_validate(data)

    return builder


@pytest.fixture
def git_identity() -> GitIdentity:
    return GitIdentity(user="gitops-bot", email="gitops-bot@example.com", token="")


@pytest.fixture
def git_remote(tmp_path: Path) -> Path:
    """A bare repository with a single commit on main."""
    seed_dir = tmp_path / "seed"
    seed = Repo.init(seed_dir)
    (seed_dir / "README.md").write_text("cluster state\n", encoding="utf-8")
    (seed_dir / "shared").mkdir()
    (seed_dir / "shared" / "objects.yaml").write_text("# shared\n", encoding="utf-8")
    seed.index.add(["README.md", "shared/objects.yaml"])
    seed.index.commit("initial commit", author=SEED_AUTHOR, committer=SEED_AUTHOR)
    seed.git.branch("-M", "main")
    remote_dir = tmp_path / "remote.git"
    seed.clone(str(remote_dir), bare=True)
    return remote_dir


def remote_head(remote: Path, branch: str = "main") -> str:
    return Repo(remote).commit(branch).hexsha


def clone_remote(remote: Path, target: Path, branch: str = "main") -> Repo:
    return Repo.clone_from(remote.as_uri(), target, branch=branch)


def commit_to_remote(
    remote: Path, workdir: Path, path: str, content: str, branch: str = "main"
) -> str:
    """Lands a commit on the remote from an independent clone."""
    repo = clone_remote(remote, workdir, branch)
    target = workdir / path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    repo.index.add([path])
    commit = repo.index.commit(
        f"update {path}", author=SEED_AUTHOR, committer=SEED_AUTHOR
    )
    repo.remote("origin").push(refspec=f"HEAD:refs/heads/{branch}")
    return commit.hexsha
