import pytest
from pydantic import ValidationError

from bound_templates.app.config import (
    DEFAULT_TEMPLATE_DIR,
    DEFAULT_TEMPLATE_EXT,
    RegistryConfig,
)
from bound_templates.tests.helpers import Page


def test_defaults():
    config = RegistryConfig()

    assert config.base_path == DEFAULT_TEMPLATE_DIR
    assert config.extension == DEFAULT_TEMPLATE_EXT
    assert config.validate_fields is False
    assert config.validation_model is None
    assert config.template_functions == {}
    assert config.autoescape is True


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("", "templates"),
        ("  ", "templates"),
        (".", "templates"),
        ("a/b/", "a/b"),
        ("./templates", "templates"),
        ("templates//sub", "templates/sub"),
        ("/views/./mail/", "views/mail"),
    ],
)
def test_base_path_normalization(raw, expected):
    assert RegistryConfig(base_path=raw).base_path == expected


@pytest.mark.parametrize("extension", ["html", ".", "./x", ""])
def test_invalid_extension_rejected(extension):
    with pytest.raises(ValidationError):
        RegistryConfig(extension=extension)


def test_model_instance_becomes_type():
    config = RegistryConfig(validation_model=Page(title="t", content="c"))

    assert config.validation_model is Page


def test_config_is_frozen():
    config = RegistryConfig()

    with pytest.raises(ValidationError):
        config.base_path = "other"


def test_unknown_options_are_rejected():
    with pytest.raises(ValidationError):
        RegistryConfig(base_dir="templates")


def test_function_names_must_be_identifiers():
    with pytest.raises(ValidationError) as exc_info:
        RegistryConfig(template_functions={"bad name": str})

    assert "bad name" in str(exc_info.value)


def test_from_env(monkeypatch):
    monkeypatch.setenv("TEMPLATES_BASE_PATH", "views")
    monkeypatch.setenv("TEMPLATES_EXTENSION", ".jinja")
    monkeypatch.setenv("TEMPLATES_AUTOESCAPE", "false")

    config = RegistryConfig.from_env()

    assert config.base_path == "views"
    assert config.extension == ".jinja"
    assert config.autoescape is False


def test_from_env_defaults_and_overrides(monkeypatch):
    monkeypatch.delenv("TEMPLATES_BASE_PATH", raising=False)
    monkeypatch.delenv("TEMPLATES_EXTENSION", raising=False)
    monkeypatch.delenv("TEMPLATES_AUTOESCAPE", raising=False)

    config = RegistryConfig.from_env(validate_fields=True, validation_model=Page)

    assert config.base_path == DEFAULT_TEMPLATE_DIR
    assert config.extension == DEFAULT_TEMPLATE_EXT
    assert config.autoescape is True
    assert config.validation_model is Page


@pytest.mark.parametrize("raw", ["..", "../templates", "templates/../other"])
def test_base_path_cannot_climb(raw):
    with pytest.raises(ValidationError):
        RegistryConfig(base_path=raw)
