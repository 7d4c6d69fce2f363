import logging
import os
import sys
from collections.abc import (
    Callable,
    MutableMapping,
)
from datetime import (
    UTC,
    datetime,
)
from typing import Any

import click
from pydantic import ValidationError

from gitops_interceptor.interceptor import (
    build_last_pushed_state,
    prepare_body,
    push_intercepted_object,
    should_intercept,
)
from gitops_interceptor.models import (
    InterceptedObject,
    ResourcesInterceptor,
)
from gitops_interceptor.status import ExitCodes
from gitops_interceptor.utils import config
from gitops_interceptor.utils.environment import (
    GITOPS_INTERCEPTOR_CONFIG,
    init_env,
)
from gitops_interceptor.utils.git_pusher import (
    InvalidRepoPathError,
    construct_path,
)
from gitops_interceptor.utils.resource_scope import (
    ResourceIdentity,
    pluralize_kind,
)
from gitops_interceptor.utils.yaml_body import (
    ObjectBodyError,
    dump_object,
    load_object,
)


def config_file(function: Callable) -> Callable:
    help_msg = "Path to configuration file in toml format."
    function = click.option(
        "--config",
        "configfile",
        default=os.environ.get(GITOPS_INTERCEPTOR_CONFIG),
        help=help_msg,
    )(function)
    return function


def log_level(function: Callable) -> Callable:
    function = click.option(
        "--log-level",
        help="log-level of the command. Defaults to INFO.",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    )(function)
    return function


def resource_identity(function: Callable) -> Callable:
    function = click.option(
        "--group", default="", help="API group, empty for core resources."
    )(function)
    function = click.option("--version", required=True, help="API version.")(
        function
    )
    function = click.option(
        "--resource", required=True, help="Resource name, e.g. deployments."
    )(function)
    function = click.option("--name", required=True, help="Object name.")(function)
    return function


def read_file(path: str) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read()


def load_interceptor(path: str) -> ResourcesInterceptor:
    try:
        return ResourcesInterceptor.model_validate(load_object(read_file(path)))
    except (ObjectBodyError, ValidationError) as e:
        logging.fatal(f"invalid ResourcesInterceptor in {path}: {e}")
        sys.exit(ExitCodes.ERROR)


def intercepted_object_from_body(body: str, resource: str | None) -> InterceptedObject:
    data = load_object(body)
    group, _, version = str(data.get("apiVersion", "")).rpartition("/")
    kind = str(data.get("kind", ""))
    metadata = data.get("metadata") or {}
    if not isinstance(metadata, MutableMapping):
        raise ObjectBodyError("metadata is not a mapping")
    if not metadata.get("name"):
        raise ObjectBodyError("metadata.name is not set")
    return InterceptedObject(
        group=group,
        version=version,
        resource=resource or pluralize_kind(kind),
        kind=kind,
        name=str(metadata["name"]),
        namespace=metadata.get("namespace", ""),
        body=body,
    )


@click.group()
@config_file
@log_level
@click.pass_context
def root(ctx: click.Context, configfile: str | None, log_level: str | None) -> None:
    ctx.ensure_object(dict)
    init_env(log_level=log_level, config_file=configfile, require_config=False)


@root.command(short_help="Check whether an object is selected by an interceptor.")
@click.argument("interceptor_file")
@resource_identity
def in_scope(
    interceptor_file: str, group: str, version: str, resource: str, name: str
) -> None:
    interceptor = load_interceptor(interceptor_file)
    obj = InterceptedObject(
        group=group, version=version, resource=resource, name=name, body=""
    )
    if should_intercept(interceptor.spec, obj):
        click.echo("in scope")
        sys.exit(ExitCodes.SUCCESS)
    click.echo("out of scope")
    sys.exit(ExitCodes.OUT_OF_SCOPE)


@root.command(short_help="Print an object without the interceptor's excluded fields.")
@click.argument("interceptor_file")
@click.argument("object_file")
def redact(interceptor_file: str, object_file: str) -> None:
    interceptor = load_interceptor(interceptor_file)
    try:
        body = prepare_body(read_file(object_file), interceptor.spec.excluded_fields)
    except ObjectBodyError as e:
        logging.fatal(str(e))
        sys.exit(ExitCodes.ERROR)
    click.echo(body, nl=False)


@root.command(short_help="Print the repository path an object is stored at.")
@click.argument("interceptor_file")
@resource_identity
def path(
    interceptor_file: str, group: str, version: str, resource: str, name: str
) -> None:
    interceptor = load_interceptor(interceptor_file)
    try:
        repo_path = construct_path(
            interceptor.spec, ResourceIdentity(group, version, resource), name
        )
    except InvalidRepoPathError as e:
        logging.fatal(str(e))
        sys.exit(ExitCodes.ERROR)
    click.echo(repo_path)


@root.command(short_help="Push an object to the interceptor's git repository.")
@click.argument("interceptor_file")
@click.argument("object_file")
@click.option(
    "--resource",
    default=None,
    help="Resource name of the object. Derived from its kind if not set.",
)
def push(interceptor_file: str, object_file: str, resource: str | None) -> None:
    interceptor = load_interceptor(interceptor_file)
    try:
        git_identity = config.git_identity_from_config()
        max_attempts = config.push_max_attempts()
    except config.ConfigNotFound as e:
        logging.fatal(str(e))
        sys.exit(ExitCodes.ERROR)
    try:
        obj = intercepted_object_from_body(read_file(object_file), resource)
    except (ObjectBodyError, ValidationError) as e:
        logging.fatal(f"invalid object in {object_file}: {e}")
        sys.exit(ExitCodes.ERROR)

    now = datetime.now(UTC)
    result = push_intercepted_object(
        interceptor.spec, obj, git_identity, max_attempts=max_attempts, now=now
    )
    state = build_last_pushed_state(result, obj, git_identity.user, now=now)
    output: dict[str, Any] = state.model_dump(
        mode="json", by_alias=True, exclude_none=True
    )
    click.echo(dump_object(output), nl=False)
    if not result.pushed:
        sys.exit(ExitCodes.PUSH_FAILED)
