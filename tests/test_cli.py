"""End-to-end tests for the apibldr CLI, driven through Typer's CliRunner.

Every test runs against an isolated config and data directory, so the
default ``file`` store writes workspaces under ``tmp_path``.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from apibldr import __version__
from apibldr.app import app, main
from apibldr.config import workspace_dir
from apibldr.exceptions import ImportRejectedError, InvalidUsageError
from apibldr.exit_codes import EXIT_IMPORT_REJECTED, EXIT_INVALID_USAGE

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def run(cli_runner, isolated_config):  # noqa: ANN001, ANN201
    """Invoke the app with *args* and return the click Result.

    Diagnostics are printed without Rich so that long messages never wrap.
    """

    def _run(*args: str, input: str | None = None):  # noqa: ANN202
        return cli_runner.invoke(app, ["--no-color", *args], input=input)

    return _run


def _exported(run) -> dict:  # noqa: ANN001
    result = run("export", "--format", "json")
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


# ---------------------------------------------------------------------------
# Root options
# ---------------------------------------------------------------------------


class TestRoot:
    def test_version(self, run) -> None:  # noqa: ANN001
        result = run("--version")
        assert result.exit_code == 0
        assert f"apibldr {__version__}" in result.stdout

    def test_no_args_shows_help(self, cli_runner, isolated_config) -> None:  # noqa: ANN001
        result = cli_runner.invoke(app, [])
        assert "Usage" in result.output

    def test_show_default_document(self, run) -> None:  # noqa: ANN001
        result = run("show")
        assert result.exit_code == 0
        assert result.stdout.startswith("openapi: 3.1.0\n")
        assert "title: API Title" in result.stdout

    def test_show_json(self, run) -> None:  # noqa: ANN001
        result = run("--json", "show")
        assert json.loads(result.stdout)["servers"][0]["url"] == "https://api.example.com"


# ---------------------------------------------------------------------------
# Section editing
# ---------------------------------------------------------------------------


class TestInfo:
    def test_set_persists_between_invocations(self, run) -> None:  # noqa: ANN001
        result = run("info", "set", "--title", "Petstore", "--version", "2.0.0")
        assert result.exit_code == 0, result.output
        assert "Updated info: title, version" in result.output

        info = _exported(run)["info"]
        assert info["title"] == "Petstore"
        assert info["version"] == "2.0.0"
        assert info["description"] == "API Description"

    def test_contact_fields(self, run) -> None:  # noqa: ANN001
        run("info", "set", "--contact-name", "API Team", "--contact-email", "api@example.com")
        assert _exported(run)["info"]["contact"] == {"name": "API Team", "email": "api@example.com"}

    def test_nothing_to_set(self, run) -> None:  # noqa: ANN001
        result = run("info", "set")
        assert result.exit_code != 0
        assert isinstance(result.exception, InvalidUsageError)

    def test_invalid_value_is_reported_but_kept(self, run) -> None:  # noqa: ANN001
        result = run("info", "set", "--title", "")
        assert result.exit_code == 0
        assert "Missing required field: info.title" in result.output
        assert run("validate").exit_code == 1

    def test_free_text_terms_is_only_a_warning(self, run) -> None:  # noqa: ANN001
        result = run("info", "set", "--terms", "See website")
        assert result.exit_code == 0, result.output
        assert "Warning: Invalid URL format in info.termsOfService" in result.output
        assert _exported(run)["info"]["termsOfService"] == "See website"
        assert "Valid with 1 warning(s)." in run("validate").output


class TestServers:
    def test_add_list_remove(self, run) -> None:  # noqa: ANN001
        assert run("server", "add", "https://{region}.example.com", "-d", "Regional").exit_code == 0

        listing = run("server", "list")
        assert listing.stdout.splitlines() == [
            "URL\tDescription",
            "https://api.example.com\tProduction server",
            "https://{region}.example.com\tRegional",
        ]

        assert run("server", "remove", "https://api.example.com").exit_code == 0
        assert [s["url"] for s in _exported(run)["servers"]] == ["https://{region}.example.com"]

    def test_remove_unknown(self, run) -> None:  # noqa: ANN001
        result = run("server", "remove", "https://nowhere.example.com")
        assert isinstance(result.exception, InvalidUsageError)
        assert "No server with URL" in str(result.exception)

    def test_json_listing(self, run) -> None:  # noqa: ANN001
        result = run("--json", "server", "list")
        assert json.loads(result.stdout) == [
            {"URL": "https://api.example.com", "Description": "Production server"}
        ]


class TestPathsAndOperations:
    def test_add_path(self, run) -> None:  # noqa: ANN001
        assert run("path", "add", "users/{id}", "--summary", "One user").exit_code == 0
        assert _exported(run)["paths"]["/users/{id}"]["summary"] == "One user"

    def test_duplicate_path(self, run) -> None:  # noqa: ANN001
        run("path", "add", "/users")
        result = run("path", "add", "/users")
        assert isinstance(result.exception, InvalidUsageError)
        assert "already exists" in str(result.exception)

    def test_op_add_with_responses_and_templates(self, run) -> None:  # noqa: ANN001
        run("schema", "add", "Pet", "--file", str(FIXTURES_DIR / "pet_schema.yaml"))
        result = run(
            "op", "add", "/pets", "GET",
            "--summary", "List pets",
            "--tag", "pets",
            "-r", "200:A pet:Pet",
            "-t", "notFound",
        )
        assert result.exit_code == 0, result.output
        assert "Added GET /pets" in result.output

        operation = _exported(run)["paths"]["/pets"]["get"]
        assert operation["summary"] == "List pets"
        assert operation["tags"] == ["pets"]
        assert list(operation["responses"]) == ["200", "404"]
        ok = operation["responses"]["200"]
        assert ok["description"] == "A pet"
        assert ok["content"]["application/json"]["schema"] == {"$ref": "#/components/schemas/Pet"}

    def test_op_add_default_response(self, run) -> None:  # noqa: ANN001
        run("op", "add", "/health", "get")
        responses = _exported(run)["paths"]["/health"]["get"]["responses"]
        assert responses == {"200": {"description": "Successful operation"}}

    def test_op_add_dangling_reference_warns(self, run) -> None:  # noqa: ANN001
        result = run("op", "add", "/orders", "post", "-r", "201:Created:Order")
        assert result.exit_code == 0
        assert "does not resolve" in result.output

    @pytest.mark.parametrize(
        "args",
        [("/pets", "fetch"), ("/pets", "get", "-t", "teapot"), ("", "get")],
    )
    def test_op_add_invalid(self, run, args) -> None:  # noqa: ANN001
        result = run("op", "add", *args)
        assert isinstance(result.exception, InvalidUsageError)
        assert result.exception.exit_code == EXIT_INVALID_USAGE

    def test_op_and_path_remove(self, run) -> None:  # noqa: ANN001
        run("op", "add", "/pets", "get")
        run("op", "add", "/pets", "post")
        assert run("op", "remove", "/pets", "get").exit_code == 0
        assert list(_exported(run)["paths"]["/pets"]) == ["post"]
        assert run("path", "remove", "/pets").exit_code == 0
        assert _exported(run)["paths"] == {}

    def test_path_list(self, run) -> None:  # noqa: ANN001
        run("op", "add", "/pets", "get")
        run("op", "add", "/pets", "post")
        assert run("path", "list").stdout.splitlines()[1] == "/pets\tGET POST\t"


class TestSchemas:
    def test_add_then_replace(self, run) -> None:  # noqa: ANN001
        schema_file = str(FIXTURES_DIR / "pet_schema.yaml")
        first = run("schema", "add", "Pet", "--file", schema_file, "--group", "Store")
        assert "Added schema Pet (Store)" in first.output
        second = run("schema", "add", "Pet", "-f", schema_file)
        assert "Replaced schema Pet" in second.output

        pet = _exported(run)["components"]["schemas"]["Pet"]
        assert pet["required"] == ["name"]
        assert pet["properties"]["id"] == {"type": "integer", "format": "int64"}

    def test_missing_file(self, run, tmp_path: Path) -> None:  # noqa: ANN001
        result = run("schema", "add", "Pet", "-f", str(tmp_path / "nope.yaml"))
        assert isinstance(result.exception, InvalidUsageError)

    def test_remove_warns_about_dangling_references(self, run) -> None:  # noqa: ANN001
        run("schema", "add", "Pet", "-f", str(FIXTURES_DIR / "pet_schema.yaml"))
        run("op", "add", "/pets", "get", "-r", "200:OK:Pet")
        result = run("schema", "remove", "Pet")
        assert result.exit_code == 0
        assert "reference(s) no longer resolve" in result.output

    def test_list_shows_group(self, run) -> None:  # noqa: ANN001
        run("schema", "add", "Pet", "-f", str(FIXTURES_DIR / "pet_schema.yaml"), "-g", "Store")
        rows = run("schema", "list").stdout.splitlines()
        assert rows[1] == "Pet\tStore\tobject\tid, name"


# ---------------------------------------------------------------------------
# Whole-document commands
# ---------------------------------------------------------------------------


class TestImport:
    def test_import_file(self, run) -> None:  # noqa: ANN001
        result = run("import", str(FIXTURES_DIR / "petstore.yaml"))
        assert result.exit_code == 0, result.output
        assert "Imported 'Petstore API' (2 paths)" in result.output
        assert list(_exported(run)["paths"]) == ["/pets", "/pets/{petId}"]

    def test_import_stdin(self, run) -> None:  # noqa: ANN001
        text = (FIXTURES_DIR / "minimal.json").read_text(encoding="utf-8")
        assert run("import", "-", input=text).exit_code == 0
        assert _exported(run)["info"]["title"] == "Minimal API"

    def test_rejected_import_keeps_workspace(self, run, tmp_path: Path) -> None:  # noqa: ANN001
        run("info", "set", "--title", "Before")
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"openapi": "3.0.0", "info": {"title": "X", "version": "1"}}))
        result = run("import", str(bad))
        assert isinstance(result.exception, ImportRejectedError)
        assert result.exception.exit_code == EXIT_IMPORT_REJECTED
        assert "Invalid OpenAPI version: 3.0.0" in result.output
        assert _exported(run)["info"]["title"] == "Before"


class TestExportValidateReset:
    def test_export_to_file(self, run, isolated_config: Path) -> None:  # noqa: ANN001
        target = isolated_config / "openapi.yaml"
        result = run("export", "-o", str(target))
        assert result.exit_code == 0
        assert f"Wrote {target}" in result.output
        assert target.read_text(encoding="utf-8").startswith("openapi: 3.1.0\n")

    def test_export_unknown_format(self, run) -> None:  # noqa: ANN001
        result = run("export", "--format", "xml")
        assert isinstance(result.exception, InvalidUsageError)

    def test_validate_default(self, run) -> None:  # noqa: ANN001
        result = run("validate")
        assert result.exit_code == 0
        assert "Document is valid." in result.output

    def test_validate_with_warnings(self, run) -> None:  # noqa: ANN001
        run("op", "add", "/pets", "get", "-r", "200:OK:Missing")
        result = run("validate")
        assert result.exit_code == 0
        assert "Valid with 1 warning(s)." in result.output

    def test_reset_force(self, run) -> None:  # noqa: ANN001
        run("info", "set", "--title", "Temporary")
        result = run("--force", "reset")
        assert result.exit_code == 0
        assert "Workspace reset to the default document." in result.output
        assert _exported(run)["info"]["title"] == "API Title"

    def test_reset_cancelled(self, run) -> None:  # noqa: ANN001
        run("info", "set", "--title", "Kept")
        result = run("reset", input="n\n")
        assert result.exit_code == 0
        assert _exported(run)["info"]["title"] == "Kept"

    def test_reset_confirmed(self, run) -> None:  # noqa: ANN001
        run("info", "set", "--title", "Gone")
        assert run("reset", input="y\n").exit_code == 0
        assert _exported(run)["info"]["title"] == "API Title"


class TestRefs:
    def test_lists_schemas(self, run) -> None:  # noqa: ANN001
        run("import", str(FIXTURES_DIR / "petstore.yaml"))
        lines = run("refs").stdout.splitlines()
        assert lines[0] == "Name\tSource\tReference"
        assert "Pet\tlive\t#/components/schemas/Pet" in lines
        assert "NewPet\tlive\t#/components/schemas/NewPet" in lines

    def test_lists_responses(self, run) -> None:  # noqa: ANN001
        run("import", str(FIXTURES_DIR / "petstore.yaml"))
        result = run("--json", "refs", "responses")
        assert json.loads(result.stdout) == [
            {"Name": "Error", "Source": "live", "Reference": "#/components/responses/Error"}
        ]

    def test_empty(self, run) -> None:  # noqa: ANN001
        result = run("refs")
        assert result.exit_code == 0
        assert "No schemas defined." in result.output

    def test_unknown_kind(self, run) -> None:  # noqa: ANN001
        result = run("refs", "parameters")
        assert isinstance(result.exception, InvalidUsageError)


# ---------------------------------------------------------------------------
# Workspaces and config
# ---------------------------------------------------------------------------


class TestWorkspaceSelection:
    def test_workspaces_are_isolated(self, run) -> None:  # noqa: ANN001
        run("-w", "other", "info", "set", "--title", "Other")
        assert _exported(run)["info"]["title"] == "API Title"
        other = run("-w", "other", "export", "--format", "json")
        assert json.loads(other.stdout)["info"]["title"] == "Other"
        assert (workspace_dir("other") / "info.json").is_file()

    def test_env_workspace(self, run, monkeypatch: pytest.MonkeyPatch) -> None:  # noqa: ANN001
        monkeypatch.setenv("APIBLDR_WORKSPACE", "from-env")
        run("info", "set", "--title", "Env")
        assert (workspace_dir("from-env") / "info.json").is_file()

    def test_invalid_workspace_name(self, run) -> None:  # noqa: ANN001
        result = run("-w", "../escape", "show")
        assert result.exit_code != 0
        assert "Invalid workspace name" in str(result.exception)


class TestConfigCommands:
    def test_show_json(self, run) -> None:  # noqa: ANN001
        result = run("--json", "--quiet", "config", "show")
        assert json.loads(result.stdout) == {
            "default_workspace": None,
            "store.backend": "file",
            "sync.debounce_ms": 300,
            "output.format": "auto",
        }

    def test_set_and_reset(self, run) -> None:  # noqa: ANN001
        result = run("config", "set", "sync.debounce_ms", "50")
        assert result.exit_code == 0
        assert "Set sync.debounce_ms = 50" in result.output
        shown = json.loads(run("--json", "-q", "config", "show").stdout)
        assert shown["sync.debounce_ms"] == 50

        assert run("--force", "config", "reset").exit_code == 0
        shown = json.loads(run("--json", "-q", "config", "show").stdout)
        assert shown["sync.debounce_ms"] == 300

    def test_default_workspace_setting(self, run) -> None:  # noqa: ANN001
        run("config", "set", "default_workspace", "pinned")
        run("info", "set", "--title", "Pinned")
        assert (workspace_dir("pinned") / "info.json").is_file()

    def test_memory_backend_from_env(self, run, monkeypatch: pytest.MonkeyPatch) -> None:  # noqa: ANN001
        monkeypatch.setenv("APIBLDR_STORE", "memory")
        run("info", "set", "--title", "Ephemeral")
        assert _exported(run)["info"]["title"] == "API Title"

    def test_unknown_key(self, run) -> None:  # noqa: ANN001
        result = run("config", "set", "nope", "1")
        assert result.exit_code != 0
        assert "Unknown config key" in str(result.exception)


# ---------------------------------------------------------------------------
# main() entry point
# ---------------------------------------------------------------------------


class TestMain:
    @pytest.fixture(autouse=True)
    def _no_signal_handlers(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apibldr.app._setup_signal_handlers", lambda: None)

    def test_apibldr_error_exit_code(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        monkeypatch.setattr("sys.argv", ["apibldr", "--no-color", "info", "set"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == EXIT_INVALID_USAGE
        assert "Error: Nothing to set" in capsys.readouterr().err

    def test_validate_failure_exit_code(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.argv", ["apibldr", "-q", "info", "set", "--version", ""])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 0

        monkeypatch.setattr("sys.argv", ["apibldr", "validate"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1

    def test_unexpected_error_writes_crash_log(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        def explode(ctx) -> None:  # noqa: ANN001
            raise RuntimeError("boom")

        monkeypatch.setattr("apibldr.commands.document.open_workspace", explode)
        monkeypatch.setattr("sys.argv", ["apibldr", "--no-color", "show"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
        assert "Unexpected error" in capsys.readouterr().err
        logs = list((isolated_config / "data" / "apibldr" / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "RuntimeError: boom" in logs[0].read_text(encoding="utf-8")
