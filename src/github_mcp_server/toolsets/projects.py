"""Projects (v2) tools (GraphQL)."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from ..errors import NotFoundError, UpstreamError, ValidationError
from ..params import (
    ParamKind,
    ParameterSpec,
    bind,
    optional_bool_ok,
    optional_string,
    require_int,
    require_string,
)
from ..registry import ToolDescriptor, ToolRegistry
from ..runtime import Runtime

_QUERY_GET_PROJECT_V2 = """
query($login: String!, $number: Int!) {
  repositoryOwner(login: $login) {
    __typename
    login
    ... on Organization {
      projectV2(number: $number) { id number title shortDescription public closed url }
    }
    ... on User {
      projectV2(number: $number) { id number title shortDescription public closed url }
    }
  }
}
""".strip()

_MUTATION_CREATE_PROJECT_V2 = """
mutation($ownerId: ID!, $title: String!) {
  createProjectV2(input: { ownerId: $ownerId, title: $title }) {
    projectV2 { id number title shortDescription public url }
  }
}
""".strip()

_MUTATION_UPDATE_PROJECT_V2 = """
mutation($projectId: ID!, $shortDescription: String, $public: Boolean) {
  updateProjectV2(input: { projectId: $projectId, shortDescription: $shortDescription, public: $public }) {
    projectV2 { id number title shortDescription public url }
  }
}
""".strip()

_MUTATION_ADD_PROJECT_V2_ITEM = """
mutation($projectId: ID!, $contentId: ID!) {
  addProjectV2ItemById(input: { projectId: $projectId, contentId: $contentId }) {
    item { id }
  }
}
""".strip()

_MUTATION_UPDATE_PROJECT_V2_ITEM = """
mutation($projectId: ID!, $itemId: ID!, $fieldId: ID!, $value: ProjectV2FieldValue!) {
  updateProjectV2ItemFieldValue(
    input: { projectId: $projectId, itemId: $itemId, fieldId: $fieldId, value: $value }
  ) {
    projectV2Item { id }
  }
}
""".strip()

_MUTATION_DELETE_PROJECT_V2_ITEM = """
mutation($projectId: ID!, $itemId: ID!) {
  deleteProjectV2Item(input: { projectId: $projectId, itemId: $itemId }) {
    deletedItemId
  }
}
""".strip()

_PROJECT_ID = ParameterSpec("project_id", ParamKind.STRING, "Project node ID", required=True)
_ITEM_ID = ParameterSpec("item_id", ParamKind.STRING, "Item node ID", required=True)

# value_type -> ProjectV2FieldValue input key
_FIELD_VALUE_KEYS = {
    "text": "text",
    "number": "number",
    "date": "date",
    "single_select": "singleSelectOptionId",
    "iteration": "iterationId",
}

_VALUE_TYPE = ParameterSpec(
    "value_type",
    ParamKind.STRING,
    "How to interpret value",
    default="text",
    enum=tuple(_FIELD_VALUE_KEYS),
)

GET_PROJECT_V2 = ToolDescriptor(
    name="get_project_v2",
    description="Get details of a specific project",
    params=(
        ParameterSpec("owner", ParamKind.STRING, "User or organization login that owns the project", required=True),
        ParameterSpec("number", ParamKind.INTEGER, "Project number", required=True, minimum=1),
    ),
)

CREATE_PROJECT_V2 = ToolDescriptor(
    name="create_project_v2",
    description="Create a new project owned by a user or organization",
    params=(
        ParameterSpec("owner", ParamKind.STRING, "User or organization login that will own the project", required=True),
        ParameterSpec("title", ParamKind.STRING, "Project title", required=True),
        ParameterSpec("description", ParamKind.STRING, "Project short description"),
        ParameterSpec("public", ParamKind.BOOLEAN, "Whether the project is public"),
    ),
    mutating=True,
)

ADD_PROJECT_V2_ITEM = ToolDescriptor(
    name="add_project_v2_item",
    description="Add an item to a project",
    params=(
        _PROJECT_ID,
        ParameterSpec("content_id", ParamKind.STRING, "Content node ID (issue or PR)", required=True),
    ),
    mutating=True,
)

UPDATE_PROJECT_V2_ITEM = ToolDescriptor(
    name="update_project_v2_item",
    description="Update a field value of an item in a project",
    params=(
        _PROJECT_ID,
        _ITEM_ID,
        ParameterSpec("field_id", ParamKind.STRING, "Field node ID", required=True),
        ParameterSpec("value", ParamKind.STRING, "New value for the field", required=True),
        _VALUE_TYPE,
    ),
    mutating=True,
)

DELETE_PROJECT_V2_ITEM = ToolDescriptor(
    name="delete_project_v2_item",
    description="Delete an item from a project",
    params=(_PROJECT_ID, _ITEM_ID),
    mutating=True,
)


def _payload(data: dict[str, Any], key: str, what: str) -> dict[str, Any]:
    payload = data.get(key)
    if not isinstance(payload, dict):
        raise UpstreamError(message=f"Unexpected {what} response")
    return payload


async def get_project_v2(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner_login = require_string(arguments, "owner")
    number = require_int(arguments, "number")

    result = await runtime.graphql.execute(
        query=_QUERY_GET_PROJECT_V2,
        variables={"login": owner_login, "number": number},
        budget=runtime.budget(),
    )
    owner = result.data.get("repositoryOwner")
    if not isinstance(owner, dict):
        raise NotFoundError(message=f"could not find user or organization with login: {owner_login}")
    project = owner.get("projectV2")
    if not isinstance(project, dict):
        raise NotFoundError(message=f"project {number} not found for {owner_login}")
    return {"owner": {"login": owner.get("login"), "type": owner.get("__typename")}, "project": project}


async def create_project_v2(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner_login = require_string(arguments, "owner")
    title = require_string(arguments, "title")
    description = optional_string(arguments, "description")
    public, public_set = optional_bool_ok(arguments, "public")

    owner = await runtime.identity.resolve(owner_login, budget=runtime.budget())

    result = await runtime.graphql.execute(
        query=_MUTATION_CREATE_PROJECT_V2,
        variables={"ownerId": owner.node_id, "title": title},
        budget=runtime.budget(),
    )
    project = _payload(_payload(result.data, "createProjectV2", "create-project"), "projectV2", "create-project")

    # createProjectV2 only takes owner and title; the rest is a follow-up update.
    if description or public_set:
        project_id = project.get("id")
        if not isinstance(project_id, str):
            raise UpstreamError(message="Unexpected create-project response")
        variables: dict[str, Any] = {"projectId": project_id}
        if description:
            variables["shortDescription"] = description
        if public_set:
            variables["public"] = public
        updated = await runtime.graphql.execute(
            query=_MUTATION_UPDATE_PROJECT_V2,
            variables=variables,
            budget=runtime.budget(),
        )
        project = _payload(_payload(updated.data, "updateProjectV2", "update-project"), "projectV2", "update-project")

    return {
        "owner": {"login": owner.login, "kind": owner.kind.value, "id": owner.node_id},
        "project": project,
    }


async def add_project_v2_item(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    project_id = require_string(arguments, "project_id")
    content_id = require_string(arguments, "content_id")

    result = await runtime.graphql.execute(
        query=_MUTATION_ADD_PROJECT_V2_ITEM,
        variables={"projectId": project_id, "contentId": content_id},
        budget=runtime.budget(),
    )
    item = _payload(_payload(result.data, "addProjectV2ItemById", "add-item"), "item", "add-item")
    if not isinstance(item.get("id"), str):
        raise UpstreamError(message="Unexpected add-item response")
    return {"item": {"id": item["id"]}}


def _field_value(value: str, value_type: str) -> dict[str, Any]:
    key = _FIELD_VALUE_KEYS.get(value_type)
    if key is None:
        raise ValidationError(
            message=f"parameter value_type must be one of {', '.join(_FIELD_VALUE_KEYS)}",
            parameter="value_type",
        )
    if value_type != "number":
        return {key: value}
    try:
        number = float(value)
    except ValueError as exc:
        raise ValidationError(
            message="parameter value must be numeric for value_type number", parameter="value"
        ) from exc
    if not math.isfinite(number):
        raise ValidationError(message="parameter value must be a finite number", parameter="value")
    return {key: number}


async def update_project_v2_item(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    project_id = require_string(arguments, "project_id")
    item_id = require_string(arguments, "item_id")
    field_id = require_string(arguments, "field_id")
    value = require_string(arguments, "value")
    value_type = bind(arguments, _VALUE_TYPE)

    result = await runtime.graphql.execute(
        query=_MUTATION_UPDATE_PROJECT_V2_ITEM,
        variables={
            "projectId": project_id,
            "itemId": item_id,
            "fieldId": field_id,
            "value": _field_value(value, value_type),
        },
        budget=runtime.budget(),
    )
    item = _payload(
        _payload(result.data, "updateProjectV2ItemFieldValue", "update-item"),
        "projectV2Item",
        "update-item",
    )
    return {"item": {"id": item.get("id")}}


async def delete_project_v2_item(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    project_id = require_string(arguments, "project_id")
    item_id = require_string(arguments, "item_id")

    result = await runtime.graphql.execute(
        query=_MUTATION_DELETE_PROJECT_V2_ITEM,
        variables={"projectId": project_id, "itemId": item_id},
        budget=runtime.budget(),
    )
    payload = _payload(result.data, "deleteProjectV2Item", "delete-item")
    return {"deleted_item_id": payload.get("deletedItemId")}


def register(registry: ToolRegistry) -> None:
    registry.register(GET_PROJECT_V2, get_project_v2)
    registry.register(CREATE_PROJECT_V2, create_project_v2)
    registry.register(ADD_PROJECT_V2_ITEM, add_project_v2_item)
    registry.register(UPDATE_PROJECT_V2_ITEM, update_project_v2_item)
    registry.register(DELETE_PROJECT_V2_ITEM, delete_project_v2_item)
