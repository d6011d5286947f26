"""Canonical Pydantic models shared across all apibldr modules.

This is the single source of truth for data shapes in the project. The models
fall into two groups:

**Canonical document models** -- the nested, OpenAPI-shaped representation
that is serialized, validated and exported:
    :class:`Document`, :class:`Info`, :class:`Contact`, :class:`License`,
    :class:`Server`, :class:`PathItem`, :class:`Operation`,
    :class:`RequestBody`, :class:`Response`, :class:`MediaType`,
    :class:`Schema`, :class:`Reference` and :class:`Components`.

**Configuration models** -- serialised as JSON in the user's config
directory: :class:`StoreConfig`, :class:`SyncConfig`, :class:`OutputConfig`
and :class:`GlobalConfig`.

A slot that may hold either a ``$ref`` pointer or an inline definition is an
explicit tagged union (:data:`SchemaOrRef`, :data:`ResponseOrRef`,
:data:`RequestBodyOrRef`); the tag is chosen by the presence of ``$ref`` so a
value is never both.

Models that may carry keys this package does not model (``parameters``,
``securitySchemes``, ``x-*`` extensions, ...) use ``extra="allow"`` so those
keys survive an import/export round trip in ``model_extra``. The content
wrappers (:class:`RequestBody`, :class:`Response`, :class:`MediaType`) use
``extra="ignore"`` and keep only the modelled fields.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag


DEFAULT_SPEC_VERSION = "3.1.0"
SUPPORTED_VERSION_PREFIX = "3.1"

REF_KEY = "$ref"


class SectionKind(str, enum.Enum):
    """The independently edited and persisted sections of a document."""

    INFO = "info"
    SERVERS = "servers"
    PATHS = "paths"
    COMPONENTS = "components"


SECTION_KINDS: tuple[str, ...] = tuple(kind.value for kind in SectionKind)


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised by OpenAPI 3.x path-item objects."""

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    PATCH = "patch"
    OPTIONS = "options"
    HEAD = "head"
    TRACE = "trace"


HTTP_METHODS: tuple[str, ...] = tuple(method.value for method in HTTPMethod)


class SchemaType(str, enum.Enum):
    """The fixed set of JSON Schema ``type`` values a :class:`Schema` may use."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    NULL = "null"


def _ref_or_inline(value: Any) -> str:
    """Pick the union tag for a ``$ref``-or-inline slot."""
    if isinstance(value, dict):
        return "ref" if REF_KEY in value else "inline"
    return "ref" if isinstance(value, Reference) else "inline"


# --- References and schemas ---


class Reference(BaseModel):
    """A ``{"$ref": "#/components/<kind>/<name>"}`` pointer.

    The pointer is not checked against the document here; dangling references
    are legal and only reported as validator warnings.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    ref: str = Field(alias=REF_KEY)


class Schema(BaseModel):
    """A recursive schema node describing a request/response body or a reusable type.

    Only the subset needed to describe bodies is modelled. Any other JSON
    Schema keyword (``enum``, ``allOf``, ``example``, ...) is preserved in
    ``model_extra``.

    ``required`` is derived data: the editing transforms recompute it from the
    per-property flags on every fold.
    """

    model_config = ConfigDict(extra="allow")

    type: Optional[Union[SchemaType, list[SchemaType]]] = None
    format: Optional[str] = None
    description: Optional[str] = None
    properties: Optional[dict[str, SchemaOrRef]] = None
    required: Optional[list[str]] = None
    items: Optional[SchemaOrRef] = None


SchemaOrRef = Annotated[
    Union[Annotated[Reference, Tag("ref")], Annotated[Schema, Tag("inline")]],
    Discriminator(_ref_or_inline),
]

Schema.model_rebuild()


# --- Content wrappers ---


class MediaType(BaseModel):
    """A content-type keyed wrapper around a schema or a reference."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    schema_: Optional[SchemaOrRef] = Field(default=None, alias="schema")


class RequestBody(BaseModel):
    """An operation's request body: description, required flag and content map."""

    model_config = ConfigDict(extra="ignore")

    description: Optional[str] = None
    required: Optional[bool] = None
    content: dict[str, MediaType] = Field(default_factory=dict)


class Response(BaseModel):
    """A response for one status code; structurally the same wrapper as :class:`RequestBody`."""

    model_config = ConfigDict(extra="ignore")

    description: str = ""
    content: Optional[dict[str, MediaType]] = None


ResponseOrRef = Annotated[
    Union[Annotated[Reference, Tag("ref")], Annotated[Response, Tag("inline")]],
    Discriminator(_ref_or_inline),
]

RequestBodyOrRef = Annotated[
    Union[Annotated[Reference, Tag("ref")], Annotated[RequestBody, Tag("inline")]],
    Discriminator(_ref_or_inline),
]


# --- Paths ---


class Operation(BaseModel):
    """One HTTP operation on a path.

    ``responses`` must hold at least one entry keyed by a 3-digit status code
    or ``default``; the validator reports violations, the model accepts them.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    summary: Optional[str] = None
    description: Optional[str] = None
    operation_id: Optional[str] = Field(default=None, alias="operationId")
    tags: list[str] = Field(default_factory=list)
    request_body: Optional[RequestBodyOrRef] = Field(default=None, alias="requestBody")
    responses: dict[str, ResponseOrRef] = Field(default_factory=dict)


class PathItem(BaseModel):
    """The operations available on a single path, at most one per HTTP method."""

    model_config = ConfigDict(extra="allow")

    summary: Optional[str] = None
    description: Optional[str] = None
    get: Optional[Operation] = None
    put: Optional[Operation] = None
    post: Optional[Operation] = None
    delete: Optional[Operation] = None
    patch: Optional[Operation] = None
    options: Optional[Operation] = None
    head: Optional[Operation] = None
    trace: Optional[Operation] = None

    def operations(self) -> dict[str, Operation]:
        """Return the defined operations keyed by method, in canonical method order."""
        result: dict[str, Operation] = {}
        for method in HTTP_METHODS:
            operation = getattr(self, method)
            if operation is not None:
                result[method] = operation
        return result


# --- Info and servers ---


class Contact(BaseModel):
    """Contact details for the exposed API."""

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    url: Optional[str] = None
    email: Optional[str] = None


class License(BaseModel):
    """License information for the exposed API."""

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    url: Optional[str] = None


class Info(BaseModel):
    """API metadata: the document's *Info Object*."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    title: str = ""
    version: str = ""
    description: Optional[str] = None
    terms_of_service: Optional[str] = Field(default=None, alias="termsOfService")
    contact: Optional[Contact] = None
    license: Optional[License] = None


class Server(BaseModel):
    """A server entry; ``url`` may be absolute or a ``{variable}`` template."""

    model_config = ConfigDict(extra="allow")

    url: str = ""
    description: Optional[str] = None


# --- Components and the document ---


class Components(BaseModel):
    """Reusable definitions that operations point at with ``$ref``."""

    model_config = ConfigDict(extra="allow")

    schemas: dict[str, SchemaOrRef] = Field(default_factory=dict)
    responses: Optional[dict[str, ResponseOrRef]] = None


class Document(BaseModel):
    """The whole canonical document.

    The OpenAPI ``openapi`` field is exposed as :attr:`spec_version`. Sections
    are never ``None``: an absent section is an empty structure so that
    serialization always succeeds.

    Example::

        doc = Document.from_dict({"openapi": "3.1.0", "info": {"title": "X", "version": "1"}})
        doc.to_dict()["info"]["title"]   # "X"
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    spec_version: str = Field(default=DEFAULT_SPEC_VERSION, alias="openapi")
    info: Info = Field(default_factory=Info)
    servers: list[Server] = Field(default_factory=list)
    paths: dict[str, PathItem] = Field(default_factory=dict)
    components: Components = Field(default_factory=Components)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        """Build a document from a parsed JSON/YAML mapping."""
        return cls.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready mapping with OpenAPI key names and no ``None`` values."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Configuration models ---


class StoreConfig(BaseModel):
    """Where workspace sections are persisted."""

    backend: str = Field(
        default="file", description="Section store backend: file, diskcache, memory"
    )


class SyncConfig(BaseModel):
    """Synchronization controller settings."""

    debounce_ms: int = Field(
        default=300, description="Quiet period before an edited section is flushed"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/apibldr/config.json``.

    Loaded and saved by :func:`~apibldr.config.load_global_config` and
    :func:`~apibldr.config.save_global_config`. See
    :func:`~apibldr.config.resolve_config` for the precedence chain.
    """

    default_workspace: Optional[str] = None
    store: StoreConfig = Field(default_factory=StoreConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
