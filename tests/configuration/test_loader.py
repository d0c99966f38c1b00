"""
Tests for composition document loading.
"""

import json

import pytest

from configuration.loader import (
    ensure_compose_document,
    find_configuration_file,
    get_configuration,
    is_compose_document,
    load_compose_document,
    read_configuration_file,
)
from core.exceptions import (
    ConfigurationFileNotFoundError,
    InvalidConfigurationError,
    InvalidTemplateFormatError,
    ReferencedTemplatePathError,
)


# ============================================================
# FIXTURES
# ============================================================

COMPOSE_YAML = """
name: my-app
services:
  api:
    path: api
  web:
    path: web
    dependsOn: api
"""


@pytest.fixture
def project_dir(tmp_path):
    """Directory holding a serverless-compose.yml."""
    (tmp_path / "serverless-compose.yml").write_text(COMPOSE_YAML, encoding="utf-8")
    return tmp_path


# ============================================================
# DISCOVERY TESTS
# ============================================================

class TestDiscovery:
    """Tests for locating the composition document."""

    def test_yml_found(self, project_dir):
        assert find_configuration_file(project_dir) == project_dir / "serverless-compose.yml"

    def test_yaml_found(self, tmp_path):
        (tmp_path / "serverless-compose.yaml").write_text(COMPOSE_YAML, encoding="utf-8")

        assert find_configuration_file(tmp_path) == tmp_path / "serverless-compose.yaml"

    def test_yml_preferred_over_yaml(self, project_dir):
        """``.yml`` is checked first."""
        (project_dir / "serverless-compose.yaml").write_text("services: {}", encoding="utf-8")

        assert find_configuration_file(project_dir).name == "serverless-compose.yml"

    def test_missing(self, tmp_path):
        assert find_configuration_file(tmp_path) is None

    @pytest.mark.asyncio
    async def test_load(self, project_dir):
        path, document = await load_compose_document(project_dir)

        assert path.name == "serverless-compose.yml"
        assert document["name"] == "my-app"
        assert set(document["services"]) == {"api", "web"}

    @pytest.mark.asyncio
    async def test_load_missing_fails(self, tmp_path):
        with pytest.raises(ConfigurationFileNotFoundError) as exc_info:
            await load_compose_document(tmp_path)

        assert exc_info.value.code == "CONFIGURATION_FILE_NOT_FOUND"
        assert exc_info.value.message == "No serverless-compose.yml file found"


# ============================================================
# PARSING TESTS
# ============================================================

class TestParsing:
    """Tests for reading documents."""

    def test_read_json(self, tmp_path):
        path = tmp_path / "template.json"
        path.write_text(json.dumps({"services": {"api": {"path": "api"}}}), encoding="utf-8")

        assert read_configuration_file(path) == {"services": {"api": {"path": "api"}}}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "serverless-compose.yml"
        path.write_text("services: [unclosed", encoding="utf-8")

        with pytest.raises(InvalidConfigurationError) as exc_info:
            read_configuration_file(path)

        assert exc_info.value.context["path"] == str(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "template.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(InvalidConfigurationError):
            read_configuration_file(path)


# ============================================================
# SHAPE TESTS
# ============================================================

class TestDocumentShape:
    """Tests for compose document validation."""

    def test_valid(self):
        assert is_compose_document({"services": {"api": {"path": "api"}}})

    def test_missing_services(self):
        assert not is_compose_document({"name": "app"})

    @pytest.mark.parametrize("services", [{}, []])
    def test_empty_services(self, services):
        assert is_compose_document({"services": services})

    @pytest.mark.parametrize("services", [None, False, 0, ""])
    def test_blank_services(self, services):
        assert not is_compose_document({"services": services})

    def test_framework_document(self):
        """A document with ``provider.name`` belongs to the Framework."""
        document = {"services": {"api": {}}, "provider": {"name": "aws"}}

        assert not is_compose_document(document)

    def test_provider_without_name(self):
        assert is_compose_document({"services": {"api": {}}, "provider": {}})

    def test_not_a_mapping(self):
        assert not is_compose_document(None)
        assert not is_compose_document(["services"])

    def test_ensure_raises(self):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            ensure_compose_document({"provider": {"name": "aws"}})

        assert exc_info.value.code == "INVALID_CONFIGURATION"

    def test_ensure_returns_document(self):
        document = {"services": {"api": {"path": "api"}}}

        assert ensure_compose_document(document) is document


# ============================================================
# TEMPLATE TESTS
# ============================================================

class TestTemplates:
    """Tests for template indirection."""

    @pytest.mark.asyncio
    async def test_mapping_passthrough(self):
        template = {"services": {"api": {"path": "api"}}}

        assert await get_configuration(template) is template

    @pytest.mark.asyncio
    async def test_path_relative_to_base_dir(self, tmp_path):
        (tmp_path / "template.yml").write_text(COMPOSE_YAML, encoding="utf-8")

        configuration = await get_configuration("template.yml", base_dir=tmp_path)

        assert configuration["name"] == "my-app"

    @pytest.mark.asyncio
    async def test_missing_path(self, tmp_path):
        with pytest.raises(ReferencedTemplatePathError) as exc_info:
            await get_configuration("missing.yml", base_dir=tmp_path)

        assert exc_info.value.code == "REFERENCED_TEMPLATE_PATH_DOES_NOT_EXIST"

    @pytest.mark.asyncio
    async def test_unsupported_suffix(self, tmp_path):
        (tmp_path / "template.txt").write_text("services: {}", encoding="utf-8")

        with pytest.raises(ReferencedTemplatePathError):
            await get_configuration("template.txt", base_dir=tmp_path)

    @pytest.mark.asyncio
    async def test_wrong_type(self):
        with pytest.raises(InvalidTemplateFormatError) as exc_info:
            await get_configuration(42)

        assert exc_info.value.code == "INVALID_TEMPLATE_FORMAT"
