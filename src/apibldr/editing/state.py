"""Normalized editing state: flat, index-addressable mirrors of each section.

Where the canonical document nests mappings (``paths -> operations ->
responses -> content -> schema -> properties``), the editing state holds
ordered :class:`EditableList` arenas of records. Every record carries

* a stable ``id`` that never changes and is never reused, so a front-end can
  keep pointing at "the third response" while the user reorders or deletes
  siblings; and
* its semantic key (``path``, ``method``, ``status_code``, ``content_type``,
  ``name``) as an ordinary editable field.

A slot that is a ``$ref``-or-inline union in the canonical model is a flag
plus both fields here (``use_reference``, ``ref`` and the inline record); the
fold in :mod:`apibldr.editing.transform` enforces that only one survives.
Sibling keys of a ``$ref`` (``summary``, ``description``) live in
``ref_extras`` and are written back only in reference mode.

Keys this package does not model are kept opaquely in each record's
``extras`` mapping.

Records are plain mutable pydantic models with ``validate_assignment``
enabled, so an invalid schema type is rejected at edit time rather than at
fold time.
"""

from __future__ import annotations

import uuid
from typing import Any, ClassVar, Generic, Iterable, Optional, TypeVar, get_args

from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema

from apibldr.models import DEFAULT_SPEC_VERSION, SchemaType, SectionKind

DEFAULT_COMPONENT_GROUP = "Common"
DEFAULT_CONTENT_TYPE = "application/json"


def new_id() -> str:
    """Return a fresh stable record identifier."""
    return uuid.uuid4().hex


class EditableRecord(BaseModel):
    """Base class for every editing-state record."""

    model_config = ConfigDict(validate_assignment=True)

    key_field: ClassVar[Optional[str]] = None

    id: str = Field(default_factory=new_id)

    @property
    def key(self) -> str:
        """The record's semantic key (path, status code, name, ...)."""
        if self.key_field is None:
            return self.id
        return getattr(self, self.key_field)


T = TypeVar("T", bound=EditableRecord)


class EditableList(list, Generic[T]):
    """An ordered arena of records addressed by stable id.

    Behaves like a ``list`` (indexing, iteration, ``append``) and adds
    id-based operations so that callers never have to translate between a
    record's position and its identity.

    Example::

        responses = EditableList([EditableResponse(status_code="200")])
        created = responses.add(EditableResponse(status_code="201"))
        responses.move(created.id, 0)
        responses.pop_id(created.id)
    """

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        args = get_args(source)
        item_schema = handler.generate_schema(args[0]) if args else core_schema.any_schema()
        return core_schema.no_info_after_validator_function(
            cls, core_schema.list_schema(item_schema)
        )

    def add(self, item: T) -> T:
        """Append *item* and return it."""
        self.append(item)
        return item

    def index_of(self, record_id: str) -> int:
        """Return the position of the record with *record_id*.

        Raises:
            KeyError: If no record has that id.
        """
        for index, item in enumerate(self):
            if item.id == record_id:
                return index
        raise KeyError(record_id)

    def get(self, record_id: str) -> T:
        """Return the record with *record_id* (``KeyError`` if absent)."""
        return self[self.index_of(record_id)]

    def pop_id(self, record_id: str) -> T:
        """Remove and return the record with *record_id*."""
        return self.pop(self.index_of(record_id))

    def move(self, record_id: str, index: int) -> None:
        """Move the record with *record_id* to position *index*."""
        item = self.pop_id(record_id)
        self.insert(index, item)

    def find(self, key: str) -> Optional[T]:
        """Return the first record whose semantic key equals *key*, or ``None``."""
        for item in self:
            if item.key == key:
                return item
        return None

    def keys(self) -> list[str]:
        """Return the semantic keys in order (blank drafts included)."""
        return [item.key for item in self]


# --- Schema records ---


class EditableProperty(EditableRecord):
    """One schema property: ``properties[name]`` joined with its ``required`` membership."""

    key_field: ClassVar[Optional[str]] = "name"

    name: str = ""
    type: Optional[SchemaType] = SchemaType.STRING
    format: str = ""
    description: str = ""
    required: bool = False
    use_reference: bool = False
    ref: str = ""
    ref_extras: dict[str, Any] = Field(default_factory=dict)
    extras: dict[str, Any] = Field(default_factory=dict)


class EditableSchema(EditableRecord):
    """An inline schema with its properties flattened into a list."""

    type: Optional[SchemaType] = SchemaType.OBJECT
    format: str = ""
    description: str = ""
    properties: EditableList[EditableProperty] = Field(default_factory=EditableList)
    extras: dict[str, Any] = Field(default_factory=dict)


def placeholder_schema() -> EditableSchema:
    """The empty inline schema that fills the slot of a reference-mode record."""
    return EditableSchema(type=SchemaType.OBJECT)


# --- Content wrappers ---


class EditableMediaType(EditableRecord):
    """One content-type entry of a request body or response."""

    key_field: ClassVar[Optional[str]] = "content_type"

    content_type: str = DEFAULT_CONTENT_TYPE
    use_reference: bool = False
    ref: str = ""
    ref_extras: dict[str, Any] = Field(default_factory=dict)
    inline_schema: Optional[EditableSchema] = Field(default_factory=placeholder_schema)


class EditableContentWrapper(EditableRecord):
    """Fields shared by request bodies and responses."""

    description: str = ""
    use_reference: bool = False
    ref: str = ""
    ref_extras: dict[str, Any] = Field(default_factory=dict)
    content: EditableList[EditableMediaType] = Field(default_factory=EditableList)

    @property
    def schema_ref(self) -> str:
        """The first active media-type reference, or ``""`` when all content is inline."""
        for media in self.content:
            if media.use_reference and media.ref:
                return media.ref
        return ""


class EditableResponse(EditableContentWrapper):
    """A response keyed by its status code."""

    key_field: ClassVar[Optional[str]] = "status_code"

    status_code: str = "200"


class EditableRequestBody(EditableContentWrapper):
    """An operation's request body."""

    required: Optional[bool] = None


# --- Paths ---


class EditableOperation(EditableRecord):
    """One HTTP operation of a path."""

    key_field: ClassVar[Optional[str]] = "method"

    method: str = "get"
    summary: str = ""
    description: str = ""
    operation_id: str = ""
    tags: list[str] = Field(default_factory=list)
    request_body: Optional[EditableRequestBody] = None
    responses: EditableList[EditableResponse] = Field(default_factory=EditableList)
    extras: dict[str, Any] = Field(default_factory=dict)


class EditablePath(EditableRecord):
    """A path and its operations."""

    key_field: ClassVar[Optional[str]] = "path"

    path: str = ""
    summary: str = ""
    description: str = ""
    operations: EditableList[EditableOperation] = Field(default_factory=EditableList)
    extras: dict[str, Any] = Field(default_factory=dict)


# --- Info and servers ---


class EditableInfo(EditableRecord):
    """The info section with contact and license fields flattened."""

    title: str = ""
    version: str = ""
    description: str = ""
    terms_of_service: str = ""
    contact_name: str = ""
    contact_url: str = ""
    contact_email: str = ""
    license_name: str = ""
    license_url: str = ""
    contact_extras: dict[str, Any] = Field(default_factory=dict)
    license_extras: dict[str, Any] = Field(default_factory=dict)
    extras: dict[str, Any] = Field(default_factory=dict)


class EditableServer(EditableRecord):
    key_field: ClassVar[Optional[str]] = "url"

    url: str = ""
    description: str = ""
    extras: dict[str, Any] = Field(default_factory=dict)


# --- Components ---


class EditableComponentSchema(EditableRecord):
    """A named reusable schema, optionally an alias of another component."""

    key_field: ClassVar[Optional[str]] = "name"

    name: str = ""
    group: str = DEFAULT_COMPONENT_GROUP
    use_reference: bool = False
    ref: str = ""
    ref_extras: dict[str, Any] = Field(default_factory=dict)
    inline_schema: EditableSchema = Field(default_factory=placeholder_schema)


class EditableComponentResponse(EditableContentWrapper):
    """A named reusable response."""

    key_field: ClassVar[Optional[str]] = "name"

    name: str = ""


class EditableComponents(EditableRecord):
    schemas: EditableList[EditableComponentSchema] = Field(default_factory=EditableList)
    responses: EditableList[EditableComponentResponse] = Field(default_factory=EditableList)
    extras: dict[str, Any] = Field(default_factory=dict)

    def groups(self) -> dict[str, str]:
        """Map each named schema to its component group."""
        return {item.name: item.group for item in self.schemas if item.name.strip()}


# --- Whole state ---


class EditingState(EditableRecord):
    """The editing mirror of a whole document.

    ``spec_version`` and ``extras`` carry the document-level fields that no
    editing surface owns, so that folding the state alone reproduces the
    document it was unfolded from.
    """

    spec_version: str = DEFAULT_SPEC_VERSION
    info: EditableInfo = Field(default_factory=EditableInfo)
    servers: EditableList[EditableServer] = Field(default_factory=EditableList)
    paths: EditableList[EditablePath] = Field(default_factory=EditableList)
    components: EditableComponents = Field(default_factory=EditableComponents)
    extras: dict[str, Any] = Field(default_factory=dict)

    def section(self, kind: str | SectionKind) -> Any:
        """Return the mutable record (or arena) behind a section."""
        return getattr(self, SectionKind(kind).value)


# --- Record factories ---


RESPONSE_TEMPLATES: dict[str, dict[str, Any]] = {
    "success": {
        "status_code": "200",
        "description": "Successful operation",
        "schema_description": "Success response",
        "properties": [
            ("success", SchemaType.BOOLEAN, "Indicates if the operation was successful", True),
            ("data", SchemaType.OBJECT, "The response data", False),
        ],
    },
    "created": {
        "status_code": "201",
        "description": "Resource created successfully",
        "schema_description": "Created resource",
        "properties": [
            ("id", SchemaType.STRING, "ID of the created resource", True),
            ("createdAt", SchemaType.STRING, "Creation timestamp", True),
        ],
    },
    "badRequest": {
        "status_code": "400",
        "description": "Bad request",
        "schema_description": "Error details",
        "properties": [
            ("message", SchemaType.STRING, "Error message", True),
            ("errors", SchemaType.ARRAY, "Validation errors", False),
        ],
    },
    "notFound": {
        "status_code": "404",
        "description": "Resource not found",
        "schema_description": "Error details",
        "properties": [
            ("message", SchemaType.STRING, "Error message", True),
        ],
    },
}


def response_from_template(name: str) -> EditableResponse:
    """Build a response record from one of :data:`RESPONSE_TEMPLATES`.

    Raises:
        KeyError: If *name* is not a known template.
    """
    template = RESPONSE_TEMPLATES[name]
    properties = EditableList(
        EditableProperty(name=prop_name, type=prop_type, description=description, required=required)
        for prop_name, prop_type, description, required in template["properties"]
    )
    schema = EditableSchema(
        type=SchemaType.OBJECT,
        description=template["schema_description"],
        properties=properties,
    )
    return EditableResponse(
        status_code=template["status_code"],
        description=template["description"],
        content=EditableList([EditableMediaType(inline_schema=schema)]),
    )


def new_response(status_code: str = "200", description: str = "Successful operation") -> EditableResponse:
    """A bare response record without content."""
    return EditableResponse(status_code=status_code, description=description)


def new_operation(method: str = "get", responses: Iterable[EditableResponse] = ()) -> EditableOperation:
    """An operation record; it gets a default ``200`` response when none are given."""
    records = EditableList(responses)
    if not records:
        records.append(new_response())
    return EditableOperation(method=method, responses=records)


def new_path(index: int, operations: Iterable[EditableOperation] = ()) -> EditablePath:
    """A placeholder path ``/new-path-<index>`` with a ``get`` operation."""
    records = EditableList(operations)
    if not records:
        records.append(new_operation("get"))
    return EditablePath(path=f"/new-path-{index}", operations=records)


def new_server() -> EditableServer:
    """A server record ready for the user to complete."""
    return EditableServer(url="https://", description="")
