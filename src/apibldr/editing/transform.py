"""Fold and unfold between the canonical document and the editing state.

Two symmetric families of pure functions:

* **unfold** (``unfold_*`` and :func:`to_editable`) turns canonical mappings
  into ordered :class:`~apibldr.editing.state.EditableList` arenas, keeping
  each entry's key alongside its converted value.
* **fold** (``fold_*`` and :func:`to_canonical`) rebuilds the mappings from
  the arenas.

Fold policies:

* A record whose identifying key (path, method, status code, content type,
  property name, component name, server url) is blank is an incomplete draft
  and is dropped without error.
* A path key that does not start with ``/`` gets one prefixed.
* On a ``$ref``-or-inline slot the ``use_reference`` flag decides: flag set
  and a non-blank ``ref`` gives ``{"$ref": ...}`` plus any sibling keys the
  reference carried, anything else gives the inline shape. The inactive
  data stays on the record but never reaches the document.
* ``required`` is recomputed from the per-property flags on every fold and is
  omitted when empty.
* When two records share a key the later one wins.

None of these functions raise on well-typed input; they are total over the
record shapes.
"""

from __future__ import annotations

import copy
from typing import Any, Mapping, Optional

import yaml
from pydantic import TypeAdapter, ValidationError

from apibldr.editing.state import (
    DEFAULT_COMPONENT_GROUP,
    EditableComponentResponse,
    EditableComponents,
    EditableComponentSchema,
    EditableContentWrapper,
    EditableInfo,
    EditableList,
    EditableMediaType,
    EditableOperation,
    EditablePath,
    EditableProperty,
    EditableRequestBody,
    EditableResponse,
    EditableSchema,
    EditableServer,
    EditingState,
    placeholder_schema,
)
from apibldr.document import SPEC_VERSION_KEY, assemble
from apibldr.exceptions import ParseError
from apibldr.models import (
    HTTP_METHODS,
    REF_KEY,
    SECTION_KINDS,
    Components,
    Document,
    Info,
    MediaType,
    Operation,
    PathItem,
    Reference,
    Schema,
    SchemaOrRef,
    SchemaType,
    SectionKind,
    Server,
)

_SCHEMA_ADAPTER: TypeAdapter[Any] = TypeAdapter(SchemaOrRef)


# ------------------------------------------------------------------ #
# Small helpers
# ------------------------------------------------------------------ #


def _dump(model: Any) -> Any:
    """Plain JSON-ready data for a canonical model."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _extras(model: Any) -> dict[str, Any]:
    """A private copy of a model's pass-through keys."""
    return copy.deepcopy(dict(model.model_extra or {}))


def _text(value: Optional[str]) -> Optional[str]:
    """``None`` for empty or whitespace-only strings, the value otherwise."""
    if value is None or not value.strip():
        return None
    return value


def _split_type(schema: Schema) -> tuple[Optional[SchemaType], dict[str, Any]]:
    """Separate a single enum type from a 3.1 type list, which goes to extras."""
    if isinstance(schema.type, list):
        return None, {"type": [item.value for item in schema.type]}
    return schema.type, {}


def _is_reference(value: Any) -> bool:
    return isinstance(value, Reference)


def _reference(ref: str, extras: Mapping[str, Any]) -> dict[str, Any]:
    """A ``$ref`` mapping followed by its sibling keys."""
    value: dict[str, Any] = {REF_KEY: ref.strip()}
    for key, extra in extras.items():
        value.setdefault(key, copy.deepcopy(extra))
    return value


# ------------------------------------------------------------------ #
# Schemas and properties
# ------------------------------------------------------------------ #


def unfold_properties(
    properties: Optional[Mapping[str, Any]],
    required: Optional[list[str]],
) -> EditableList[EditableProperty]:
    """Join ``properties`` and ``required`` into one list of property records.

    The ``required`` flag of each record is derived by membership of its name
    in *required*.
    """
    required_names = set(required or [])
    records: EditableList[EditableProperty] = EditableList()
    for name, prop in (properties or {}).items():
        if _is_reference(prop):
            records.append(
                EditableProperty(
                    name=name,
                    type=None,
                    required=name in required_names,
                    use_reference=True,
                    ref=prop.ref,
                    ref_extras=_extras(prop),
                )
            )
            continue

        prop_type, extras = _split_type(prop)
        extras.update(_extras(prop))
        if prop.properties is not None:
            extras["properties"] = {key: _dump(value) for key, value in prop.properties.items()}
        if prop.required is not None:
            extras["required"] = list(prop.required)
        if prop.items is not None:
            extras["items"] = _dump(prop.items)
        records.append(
            EditableProperty(
                name=name,
                type=prop_type,
                format=prop.format or "",
                description=prop.description or "",
                required=name in required_names,
                extras=extras,
            )
        )
    return records


def fold_properties(
    records: list[EditableProperty],
) -> tuple[dict[str, Any], list[str]]:
    """Rebuild ``properties`` and derive ``required`` from property records.

    Returns:
        ``(properties, required)``. ``required`` lists the names whose final
        record is flagged, in property order.
    """
    properties: dict[str, Any] = {}
    flags: dict[str, bool] = {}
    for record in records:
        name = record.name.strip()
        if not name:
            continue
        if record.use_reference and record.ref.strip():
            properties[name] = _reference(record.ref, record.ref_extras)
        else:
            value = copy.deepcopy(record.extras)
            if record.type is not None:
                value["type"] = record.type.value
            if _text(record.format):
                value["format"] = record.format
            if _text(record.description):
                value["description"] = record.description
            properties[name] = value
        flags[name] = record.required
    required = [name for name in properties if flags[name]]
    return properties, required


def unfold_schema(schema: Optional[Schema]) -> EditableSchema:
    """Convert an inline schema into an editable schema record.

    ``None`` gives the empty placeholder schema.
    """
    if schema is None:
        return placeholder_schema()
    schema_type, extras = _split_type(schema)
    extras.update(_extras(schema))
    if schema.items is not None:
        extras["items"] = _dump(schema.items)
    return EditableSchema(
        type=schema_type,
        format=schema.format or "",
        description=schema.description or "",
        properties=unfold_properties(schema.properties, schema.required),
        extras=extras,
    )


def fold_schema(record: EditableSchema) -> dict[str, Any]:
    """Rebuild an inline schema mapping, recomputing ``required``."""
    value = copy.deepcopy(record.extras)
    value.pop("properties", None)
    value.pop("required", None)
    if record.type is not None:
        value["type"] = record.type.value
    if _text(record.format):
        value["format"] = record.format
    if _text(record.description):
        value["description"] = record.description
    properties, required = fold_properties(record.properties)
    if properties:
        value["properties"] = properties
    if required:
        value["required"] = required
    return value


def _fold_slot(record: EditableMediaType | EditableComponentSchema) -> Optional[dict[str, Any]]:
    """Fold a reference-or-inline schema slot; the active flag wins."""
    if record.use_reference and record.ref.strip():
        return _reference(record.ref, record.ref_extras)
    if record.inline_schema is None:
        return None
    return fold_schema(record.inline_schema)


# ------------------------------------------------------------------ #
# Content wrappers (request bodies and responses)
# ------------------------------------------------------------------ #


def unfold_content(content: Optional[Mapping[str, MediaType]]) -> EditableList[EditableMediaType]:
    """Convert a ``content`` mapping into media-type records.

    A ``$ref`` schema is detected first: the record is put in reference mode
    and its inline slot gets the empty placeholder.
    """
    records: EditableList[EditableMediaType] = EditableList()
    for content_type, media in (content or {}).items():
        schema = media.schema_
        if _is_reference(schema):
            records.append(
                EditableMediaType(
                    content_type=content_type,
                    use_reference=True,
                    ref=schema.ref,
                    ref_extras=_extras(schema),
                    inline_schema=placeholder_schema(),
                )
            )
        else:
            records.append(
                EditableMediaType(
                    content_type=content_type,
                    inline_schema=unfold_schema(schema) if schema is not None else None,
                )
            )
    return records


def fold_content(records: list[EditableMediaType]) -> dict[str, Any]:
    """Rebuild a ``content`` mapping from media-type records."""
    content: dict[str, Any] = {}
    for record in records:
        content_type = record.content_type.strip()
        if not content_type:
            continue
        schema = _fold_slot(record)
        content[content_type] = {} if schema is None else {"schema": schema}
    return content


def _fold_wrapper(record: EditableContentWrapper) -> Optional[dict[str, Any]]:
    """The ``$ref`` form of a wrapper record, or ``None`` when it is inline."""
    if record.use_reference and record.ref.strip():
        return _reference(record.ref, record.ref_extras)
    return None


def unfold_response(status_code: str, response: Any) -> EditableResponse:
    """Convert one response (or response reference) into a record."""
    if _is_reference(response):
        return EditableResponse(
            status_code=status_code, use_reference=True, ref=response.ref, ref_extras=_extras(response)
        )
    return EditableResponse(
        status_code=status_code,
        description=response.description,
        content=unfold_content(response.content),
    )


def fold_response(record: EditableContentWrapper) -> dict[str, Any]:
    """Rebuild one response mapping from a response record."""
    reference = _fold_wrapper(record)
    if reference is not None:
        return reference
    value: dict[str, Any] = {"description": record.description}
    content = fold_content(record.content)
    if content:
        value["content"] = content
    return value


def unfold_responses(responses: Mapping[str, Any]) -> EditableList[EditableResponse]:
    """Convert an operation's ``responses`` mapping into response records."""
    return EditableList(unfold_response(code, value) for code, value in responses.items())


def fold_responses(records: list[EditableResponse]) -> dict[str, Any]:
    """Rebuild ``responses``; records with a blank status code are dropped."""
    responses: dict[str, Any] = {}
    for record in records:
        code = record.status_code.strip()
        if not code:
            continue
        responses[code] = fold_response(record)
    return responses


def unfold_request_body(body: Any) -> Optional[EditableRequestBody]:
    """Convert a request body (or reference) into a record; ``None`` stays ``None``."""
    if body is None:
        return None
    if _is_reference(body):
        return EditableRequestBody(use_reference=True, ref=body.ref, ref_extras=_extras(body))
    return EditableRequestBody(
        description=body.description or "",
        required=body.required,
        content=unfold_content(body.content),
    )


def fold_request_body(record: EditableRequestBody) -> dict[str, Any]:
    """Rebuild a request body mapping from its record."""
    reference = _fold_wrapper(record)
    if reference is not None:
        return reference
    value: dict[str, Any] = {}
    if _text(record.description):
        value["description"] = record.description
    if record.required is not None:
        value["required"] = record.required
    value["content"] = fold_content(record.content)
    return value


# ------------------------------------------------------------------ #
# Operations and paths
# ------------------------------------------------------------------ #


def unfold_operation(method: str, operation: Operation) -> EditableOperation:
    """Convert one operation into an operation record."""
    return EditableOperation(
        method=method,
        summary=operation.summary or "",
        description=operation.description or "",
        operation_id=operation.operation_id or "",
        tags=list(operation.tags),
        request_body=unfold_request_body(operation.request_body),
        responses=unfold_responses(operation.responses),
        extras=_extras(operation),
    )


def fold_operation(record: EditableOperation) -> dict[str, Any]:
    """Rebuild one operation mapping from its record."""
    value: dict[str, Any] = {}
    if _text(record.summary):
        value["summary"] = record.summary
    if _text(record.description):
        value["description"] = record.description
    if _text(record.operation_id):
        value["operationId"] = record.operation_id
    value["tags"] = [tag for tag in record.tags if tag.strip()]
    if record.request_body is not None:
        value["requestBody"] = fold_request_body(record.request_body)
    value["responses"] = fold_responses(record.responses)
    for key, extra in record.extras.items():
        value.setdefault(key, copy.deepcopy(extra))
    return value


def unfold_paths(paths: Mapping[str, PathItem]) -> EditableList[EditablePath]:
    """Convert the ``paths`` mapping into path records, one per path string."""
    records: EditableList[EditablePath] = EditableList()
    for path, item in paths.items():
        operations = EditableList(
            unfold_operation(method, operation) for method, operation in item.operations().items()
        )
        records.append(
            EditablePath(
                path=path,
                summary=item.summary or "",
                description=item.description or "",
                operations=operations,
                extras=_extras(item),
            )
        )
    return records


def normalize_path(path: str) -> str:
    """Strip *path* and make sure it starts with ``/`` (blank stays blank)."""
    path = path.strip()
    if path and not path.startswith("/"):
        path = "/" + path
    return path


def fold_paths(records: list[EditablePath]) -> dict[str, PathItem]:
    """Rebuild the ``paths`` mapping.

    Blank paths and operations with a blank or unknown method are dropped;
    paths missing their leading ``/`` are normalized.
    """
    paths: dict[str, PathItem] = {}
    for record in records:
        key = normalize_path(record.path)
        if not key:
            continue
        item: dict[str, Any] = copy.deepcopy(record.extras)
        if _text(record.summary):
            item["summary"] = record.summary
        if _text(record.description):
            item["description"] = record.description
        for operation in record.operations:
            method = operation.method.strip().lower()
            if method not in HTTP_METHODS:
                continue
            item[method] = fold_operation(operation)
        paths[key] = PathItem.model_validate(item)
    return paths


# ------------------------------------------------------------------ #
# Info and servers
# ------------------------------------------------------------------ #


def unfold_info(info: Info) -> EditableInfo:
    """Flatten the info section, including contact and license fields."""
    contact = info.contact
    license_ = info.license
    return EditableInfo(
        title=info.title,
        version=info.version,
        description=info.description or "",
        terms_of_service=info.terms_of_service or "",
        contact_name=(contact.name or "") if contact else "",
        contact_url=(contact.url or "") if contact else "",
        contact_email=(contact.email or "") if contact else "",
        license_name=(license_.name or "") if license_ else "",
        license_url=(license_.url or "") if license_ else "",
        contact_extras=_extras(contact) if contact else {},
        license_extras=_extras(license_) if license_ else {},
        extras=_extras(info),
    )


def _compact(fields: dict[str, Optional[str]], extras: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Drop empty fields; ``None`` when nothing is left."""
    value = copy.deepcopy(extras)
    value.update({key: item for key, item in fields.items() if item is not None})
    return value or None


def fold_info(record: EditableInfo) -> Info:
    """Rebuild the info section.

    Contact and license objects whose fields are all empty are omitted rather
    than stored as empty shells.
    """
    value: dict[str, Any] = copy.deepcopy(record.extras)
    value["title"] = record.title
    value["version"] = record.version
    if _text(record.description):
        value["description"] = record.description
    if _text(record.terms_of_service):
        value["termsOfService"] = record.terms_of_service
    contact = _compact(
        {
            "name": _text(record.contact_name),
            "url": _text(record.contact_url),
            "email": _text(record.contact_email),
        },
        record.contact_extras,
    )
    if contact is not None:
        value["contact"] = contact
    license_ = _compact(
        {"name": _text(record.license_name), "url": _text(record.license_url)},
        record.license_extras,
    )
    if license_ is not None:
        value["license"] = license_
    return Info.model_validate(value)


def unfold_servers(servers: list[Server]) -> EditableList[EditableServer]:
    return EditableList(
        EditableServer(url=server.url, description=server.description or "", extras=_extras(server))
        for server in servers
    )


def fold_servers(records: list[EditableServer]) -> list[Server]:
    """Rebuild the servers list; servers with a blank url are dropped."""
    servers: list[Server] = []
    for record in records:
        url = record.url.strip()
        if not url:
            continue
        value: dict[str, Any] = copy.deepcopy(record.extras)
        value["url"] = url
        if _text(record.description):
            value["description"] = record.description
        servers.append(Server.model_validate(value))
    return servers


# ------------------------------------------------------------------ #
# Components
# ------------------------------------------------------------------ #


def unfold_component_schema(
    name: str, schema: Any, group: str = DEFAULT_COMPONENT_GROUP
) -> EditableComponentSchema:
    """Convert one named reusable schema (or schema alias) into a record."""
    if _is_reference(schema):
        return EditableComponentSchema(
            name=name, group=group, use_reference=True, ref=schema.ref, ref_extras=_extras(schema)
        )
    return EditableComponentSchema(name=name, group=group, inline_schema=unfold_schema(schema))


def unfold_components(
    components: Components,
    groups: Optional[Mapping[str, str]] = None,
) -> EditableComponents:
    """Convert the components section into records.

    Args:
        components: The canonical components section.
        groups: Component group per schema name (from the persisted summary
            records); schemas without an entry get the default group.
    """
    groups = groups or {}
    schemas = EditableList(
        unfold_component_schema(name, schema, groups.get(name, DEFAULT_COMPONENT_GROUP))
        for name, schema in components.schemas.items()
    )
    responses: EditableList[EditableComponentResponse] = EditableList()
    for name, response in (components.responses or {}).items():
        unfolded = unfold_response("", response)
        responses.append(
            EditableComponentResponse(
                name=name,
                description=unfolded.description,
                use_reference=unfolded.use_reference,
                ref=unfolded.ref,
                ref_extras=unfolded.ref_extras,
                content=unfolded.content,
            )
        )
    return EditableComponents(schemas=schemas, responses=responses, extras=_extras(components))


def fold_components(record: EditableComponents) -> Components:
    """Rebuild the components section; unnamed drafts are dropped."""
    value: dict[str, Any] = copy.deepcopy(record.extras)
    schemas: dict[str, Any] = {}
    for item in record.schemas:
        name = item.name.strip()
        if not name:
            continue
        schemas[name] = _fold_slot(item)
    value["schemas"] = schemas
    responses: dict[str, Any] = {}
    for item in record.responses:
        name = item.name.strip()
        if not name:
            continue
        responses[name] = fold_response(item)
    if responses:
        value["responses"] = responses
    return Components.model_validate(value)


def component_schema_from_yaml(
    name: str, text: str, group: str = DEFAULT_COMPONENT_GROUP
) -> EditableComponentSchema:
    """Build a component schema record from raw YAML (or JSON) schema text.

    Raises:
        ParseError: If *text* is not valid YAML, is not a mapping, or does not
            describe a schema.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ParseError(f"Invalid YAML for schema '{name}': {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"Schema '{name}' must be a mapping")
    try:
        schema = _SCHEMA_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise ParseError(f"Schema '{name}' is not a valid schema: {exc}") from exc
    return unfold_component_schema(name, schema, group)


def component_schema_to_yaml(record: EditableComponentSchema) -> str:
    """Render a component schema record as YAML text (the inverse of the above)."""
    value = _fold_slot(record) or {}
    return yaml.safe_dump(value, sort_keys=False, allow_unicode=True)


# ------------------------------------------------------------------ #
# Whole document
# ------------------------------------------------------------------ #


def fold_section(kind: str | SectionKind, state: EditingState) -> Any:
    """Fold one section of *state* into its canonical value."""
    kind = SectionKind(kind)
    if kind is SectionKind.INFO:
        return fold_info(state.info)
    if kind is SectionKind.SERVERS:
        return fold_servers(state.servers)
    if kind is SectionKind.PATHS:
        return fold_paths(state.paths)
    return fold_components(state.components)


def to_editable(
    document: Document,
    groups: Optional[Mapping[str, str]] = None,
) -> EditingState:
    """Unfold a whole document into a fresh editing state.

    Args:
        document: The canonical document.
        groups: Component group per schema name, if known.
    """
    return EditingState(
        spec_version=document.spec_version,
        info=unfold_info(document.info),
        servers=unfold_servers(document.servers),
        paths=unfold_paths(document.paths),
        components=unfold_components(document.components, groups),
        extras=_extras(document),
    )


def to_canonical(state: EditingState, previous: Optional[Document] = None) -> Document:
    """Fold a whole editing state into a canonical document.

    Args:
        state: The editing state to fold.
        previous: Document supplying the keys no section owns; defaults to
            the state's own ``spec_version`` and ``extras``.
    """
    if previous is None:
        base: dict[str, Any] = copy.deepcopy(state.extras)
        base[SPEC_VERSION_KEY] = state.spec_version
        previous = Document.model_validate(base)
    sections: dict[str, Any] = {kind: fold_section(kind, state) for kind in SECTION_KINDS}
    sections[SPEC_VERSION_KEY] = state.spec_version
    return assemble(sections, previous=previous)


__all__ = [
    "component_schema_from_yaml",
    "component_schema_to_yaml",
    "fold_components",
    "fold_content",
    "fold_info",
    "fold_operation",
    "fold_paths",
    "fold_properties",
    "fold_request_body",
    "fold_response",
    "fold_responses",
    "fold_schema",
    "fold_section",
    "fold_servers",
    "normalize_path",
    "to_canonical",
    "to_editable",
    "unfold_components",
    "unfold_content",
    "unfold_info",
    "unfold_operation",
    "unfold_paths",
    "unfold_properties",
    "unfold_request_body",
    "unfold_response",
    "unfold_responses",
    "unfold_schema",
    "unfold_servers",
]
