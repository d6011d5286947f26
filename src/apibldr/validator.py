"""Structural validation of a canonical document.

:func:`validate` evaluates every rule and returns the list of
:class:`ValidationIssue` objects it finds; an empty list means the document is
valid. Validation never raises and never modifies the document, and the same
input always yields the same issues in the same order.

Rules, in evaluation order:

1. ``openapi`` is present and starts with ``3.1``.
2. ``info``, ``info.title`` and ``info.version`` are present.
3. ``info.contact.email`` looks like an email address; ``info.contact.url``
   and ``info.license.url`` are absolute URLs. A non-URL
   ``info.termsOfService`` is a ``warning``.
4. An ``info.license`` object has a ``name``.
5. Every server has a ``url`` that is an absolute URL or a ``{variable}``
   template URL.
6. Every path key starts with ``/``.
7. Every operation has a non-empty ``responses`` mapping whose keys are
   3-digit status codes, ``1XX``-style ranges or ``default``.
8. Internal ``#/components/...`` references point at existing components
   (``warning`` severity only).

Issues with ``error`` severity block an import; warnings never block
anything.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping
from urllib.parse import urlsplit

from pydantic import BaseModel

from apibldr.models import HTTP_METHODS, SUPPORTED_VERSION_PREFIX, Document
from apibldr.references import find_dangling_refs

ERROR = "error"
WARNING = "warning"

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*$")
_TEMPLATE_URL_RE = re.compile(
    r"^(https?://)(([a-zA-Z0-9\-_.]+)|(\{[a-zA-Z0-9\-_.]+\}))(:[0-9]+)?"
    r"(/([a-zA-Z0-9\-_./]+|\{[a-zA-Z0-9\-_.]+\}))*/?$"
)
_STATUS_CODE_RE = re.compile(r"^([1-5][0-9]{2}|[1-5]XX|default)$")


class ValidationIssue(BaseModel):
    """A single problem found in a document.

    Attributes:
        message: Human-readable description naming the offending location.
        location: Dotted path of the offending field (``""`` for the root).
        severity: ``"error"`` or ``"warning"``.
    """

    message: str
    location: str = ""
    severity: str = ERROR

    def __str__(self) -> str:
        return self.message

    @property
    def is_blocking(self) -> bool:
        return self.severity == ERROR


def is_valid_url(value: str, allow_variables: bool = False) -> bool:
    """Return whether *value* is an absolute URL.

    With *allow_variables*, server-style templates such as
    ``https://{host}:8443/{basePath}`` are accepted too.
    """
    if _is_absolute_url(value):
        return True
    if allow_variables:
        return bool(_TEMPLATE_URL_RE.match(value))
    return False


def _is_absolute_url(value: str) -> bool:
    if not value or any(char.isspace() for char in value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return False
    if parts.scheme.lower() in ("http", "https"):
        return bool(parts.netloc)
    return bool(parts.netloc or parts.path)


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _check_version(data: Mapping[str, Any]) -> Iterable[ValidationIssue]:
    version = data.get("openapi")
    if not version:
        yield ValidationIssue(message="Missing required field: openapi", location="openapi")
    elif not str(version).startswith(SUPPORTED_VERSION_PREFIX):
        yield ValidationIssue(
            message=f"Invalid OpenAPI version: {version}. Must be {SUPPORTED_VERSION_PREFIX}.x",
            location="openapi",
        )


def _check_info(data: Mapping[str, Any]) -> Iterable[ValidationIssue]:
    info = data.get("info")
    if not isinstance(info, Mapping):
        yield ValidationIssue(message="Missing required field: info", location="info")
        return
    for field in ("title", "version"):
        if not info.get(field):
            yield ValidationIssue(message=f"Missing required field: info.{field}", location=f"info.{field}")

    terms = info.get("termsOfService")
    if terms and not is_valid_url(str(terms)):
        yield ValidationIssue(
            message="Invalid URL format in info.termsOfService",
            location="info.termsOfService",
            severity=WARNING,
        )

    contact = info.get("contact")
    if isinstance(contact, Mapping):
        email = contact.get("email")
        if email and not _EMAIL_RE.match(str(email)):
            yield ValidationIssue(
                message="Invalid email format in info.contact.email", location="info.contact.email"
            )
        url = contact.get("url")
        if url and not is_valid_url(str(url)):
            yield ValidationIssue(message="Invalid URL format in info.contact.url", location="info.contact.url")

    license_ = info.get("license")
    if isinstance(license_, Mapping):
        if not license_.get("name"):
            yield ValidationIssue(
                message="Missing required field: info.license.name", location="info.license.name"
            )
        url = license_.get("url")
        if url and not is_valid_url(str(url)):
            yield ValidationIssue(message="Invalid URL format in info.license.url", location="info.license.url")


def _check_servers(data: Mapping[str, Any]) -> Iterable[ValidationIssue]:
    servers = data.get("servers")
    if not isinstance(servers, list):
        return
    for index, server in enumerate(servers):
        location = f"servers[{index}].url"
        url = _as_mapping(server).get("url")
        if not url:
            yield ValidationIssue(message=f"Missing required field: {location}", location=location)
        elif not is_valid_url(str(url), allow_variables=True):
            yield ValidationIssue(message=f"Invalid URL format in {location}", location=location)


def _check_paths(data: Mapping[str, Any]) -> Iterable[ValidationIssue]:
    paths = data.get("paths")
    if not isinstance(paths, Mapping):
        return
    for path, item in paths.items():
        if not str(path).startswith("/"):
            yield ValidationIssue(
                message=f'Path "{path}" must start with a forward slash (/)', location=f"paths.{path}"
            )
        item = _as_mapping(item)
        for method in HTTP_METHODS:
            operation = item.get(method)
            if not isinstance(operation, Mapping):
                continue
            location = f'paths["{path}"].{method}.responses'
            responses = operation.get("responses")
            if not isinstance(responses, Mapping):
                yield ValidationIssue(message=f"Missing required field: {location}", location=location)
                continue
            if not responses:
                yield ValidationIssue(
                    message=f"At least one response must be defined in {location}", location=location
                )
            for code in responses:
                if not _STATUS_CODE_RE.match(str(code)):
                    yield ValidationIssue(
                        message=f'Invalid status code "{code}" in {location}', location=f"{location}.{code}"
                    )


def _check_references(data: Mapping[str, Any]) -> Iterable[ValidationIssue]:
    for location, ref in find_dangling_refs(dict(data)):
        yield ValidationIssue(
            message=f'Reference "{ref}" at {location} does not resolve', location=location, severity=WARNING
        )


_RULES = (_check_version, _check_info, _check_servers, _check_paths, _check_references)


def validate(document: Document | Mapping[str, Any]) -> list[ValidationIssue]:
    """Check *document* against every structural rule.

    Args:
        document: A :class:`~apibldr.models.Document` or the raw mapping
            parsed from JSON/YAML.

    Returns:
        All issues found, errors and warnings, in rule order.
    """
    data = document.to_dict() if isinstance(document, Document) else _as_mapping(document)
    issues: list[ValidationIssue] = []
    for rule in _RULES:
        issues.extend(rule(data))
    return issues


def blocking_issues(issues: Iterable[ValidationIssue]) -> list[ValidationIssue]:
    """Return only the issues that block an import."""
    return [issue for issue in issues if issue.is_blocking]
