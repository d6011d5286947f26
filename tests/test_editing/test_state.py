"""Tests for apibldr.editing.state -- id arenas, record validation, factories."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from apibldr.editing.state import (
    RESPONSE_TEMPLATES,
    EditableComponents,
    EditableComponentSchema,
    EditableList,
    EditableMediaType,
    EditableProperty,
    EditableResponse,
    EditableSchema,
    EditingState,
    new_operation,
    new_path,
    new_response,
    new_server,
    response_from_template,
)
from apibldr.models import SchemaType


def _responses(*codes: str) -> EditableList[EditableResponse]:
    return EditableList(EditableResponse(status_code=code) for code in codes)


class TestEditableList:
    """Id-addressed operations on an ordered arena."""

    def test_add_returns_record(self) -> None:
        arena = _responses("200")
        created = arena.add(EditableResponse(status_code="404"))
        assert arena[-1] is created
        assert arena.keys() == ["200", "404"]

    def test_get_and_index_of(self) -> None:
        arena = _responses("200", "201", "404")
        target = arena[1]
        assert arena.index_of(target.id) == 1
        assert arena.get(target.id) is target

    def test_unknown_id_raises_key_error(self) -> None:
        arena = _responses("200")
        with pytest.raises(KeyError):
            arena.get("missing")
        with pytest.raises(KeyError):
            arena.pop_id("missing")

    def test_pop_id(self) -> None:
        arena = _responses("200", "404")
        removed = arena.pop_id(arena[0].id)
        assert removed.status_code == "200"
        assert arena.keys() == ["404"]

    def test_move_keeps_identity(self) -> None:
        arena = _responses("200", "201", "404")
        ids = [item.id for item in arena]
        arena.move(ids[2], 0)
        assert arena.keys() == ["404", "200", "201"]
        assert sorted(item.id for item in arena) == sorted(ids)

    def test_find_by_semantic_key(self) -> None:
        arena = _responses("200", "404", "404")
        assert arena.find("404") is arena[1]
        assert arena.find("500") is None

    def test_ids_are_unique(self) -> None:
        arena = _responses(*["200"] * 20)
        assert len({item.id for item in arena}) == 20

    def test_models_coerce_plain_lists(self) -> None:
        schema = EditableSchema(properties=[EditableProperty(name="id")])
        assert isinstance(schema.properties, EditableList)
        assert schema.properties.find("id") is not None


class TestRecordValidation:
    def test_schema_type_is_checked_on_assignment(self) -> None:
        prop = EditableProperty(name="age")
        prop.type = "integer"
        assert prop.type is SchemaType.INTEGER
        with pytest.raises(ValidationError):
            prop.type = "decimal"

    def test_key_property(self) -> None:
        assert EditableProperty(name="id").key == "id"
        assert EditableMediaType(content_type="text/plain").key == "text/plain"
        assert EditableComponentSchema(name="Pet").key == "Pet"

    def test_media_type_defaults(self) -> None:
        media = EditableMediaType()
        assert media.content_type == "application/json"
        assert media.use_reference is False
        assert media.inline_schema is not None
        assert media.inline_schema.type is SchemaType.OBJECT

    def test_schema_ref_of_wrapper(self) -> None:
        response = EditableResponse(
            content=[
                EditableMediaType(content_type="text/plain"),
                EditableMediaType(use_reference=True, ref="#/components/schemas/Pet"),
            ]
        )
        assert response.schema_ref == "#/components/schemas/Pet"
        assert EditableResponse().schema_ref == ""


class TestEditingState:
    def test_section_returns_live_record(self) -> None:
        state = EditingState()
        assert state.section("paths") is state.paths
        assert state.section("info") is state.info

    def test_unknown_section(self) -> None:
        with pytest.raises(ValueError):
            EditingState().section("webhooks")

    def test_component_groups_skip_unnamed_drafts(self) -> None:
        components = EditableComponents(
            schemas=[
                EditableComponentSchema(name="Pet", group="Store"),
                EditableComponentSchema(name="  "),
                EditableComponentSchema(name="Error"),
            ]
        )
        assert components.groups() == {"Pet": "Store", "Error": "Common"}


class TestFactories:
    @pytest.mark.parametrize("name", list(RESPONSE_TEMPLATES))
    def test_templates(self, name: str) -> None:
        response = response_from_template(name)
        template = RESPONSE_TEMPLATES[name]
        assert response.status_code == template["status_code"]
        assert response.description == template["description"]
        schema = response.content[0].inline_schema
        assert schema.properties.keys() == [prop[0] for prop in template["properties"]]

    def test_created_template_required_flags(self) -> None:
        schema = response_from_template("created").content[0].inline_schema
        assert [p.name for p in schema.properties if p.required] == ["id", "createdAt"]

    def test_unknown_template(self) -> None:
        with pytest.raises(KeyError):
            response_from_template("teapot")

    def test_new_operation_gets_default_response(self) -> None:
        operation = new_operation("post")
        assert operation.method == "post"
        assert operation.responses.keys() == ["200"]

    def test_new_operation_keeps_given_responses(self) -> None:
        operation = new_operation("get", [new_response("204", "No content")])
        assert operation.responses.keys() == ["204"]

    def test_new_path(self) -> None:
        path = new_path(3)
        assert path.path == "/new-path-3"
        assert path.operations.keys() == ["get"]

    def test_new_server(self) -> None:
        assert new_server().url == "https://"
