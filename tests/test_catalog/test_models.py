"""Tests for the catalog models.

Covers:
- camelCase and snake_case descriptor keys
- Scoped record defaults and origin tagging
- Package compatibility and shared-name defaults
- Immutability of catalog entities
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from monogen.catalog.models import (
    Dependency,
    EnvVar,
    ExtraOptionPrompt,
    Framework,
    Origin,
    OriginScope,
    OriginType,
    Package,
    PromptChoice,
    Script,
)


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class TestScopedRecords:
    def test_scope_defaults_to_both(self):
        dep = Dependency(name="hono", version="^4.0.0")
        assert dep.add_in_app is True
        assert dep.add_in_shared is True
        assert dep.origin is None

    def test_camel_case_scope_keys(self):
        dep = Dependency.model_validate({"name": "x", "addInApp": False, "addInShared": True})
        assert dep.add_in_app is False
        assert dep.add_in_shared is True

    def test_dependency_version_defaults_to_latest(self):
        assert Dependency(name="x").version == "latest"

    def test_value_is_uniform(self):
        assert Dependency(name="a", version="1").value == "1"
        assert Script(name="dev", command="vite").value == "vite"
        assert EnvVar(name="PORT", value="4000").value == "4000"

    def test_env_var_numbers_become_strings(self):
        assert EnvVar.model_validate({"name": "PORT", "value": 4000}).value == "4000"

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            Dependency(name="")

    def test_script_requires_command(self):
        with pytest.raises(ValidationError):
            Script.model_validate({"name": "dev"})

    def test_with_origin_returns_tagged_copy(self):
        dep = Dependency(name="a", version="1")
        tagged = dep.with_origin(OriginScope.PACKAGE, OriginType.TEMPLATE, "zod")
        assert dep.origin is None
        assert tagged.origin == Origin(
            scope=OriginScope.PACKAGE, type=OriginType.TEMPLATE, source="zod"
        )
        assert tagged.name == "a"
        assert isinstance(tagged, Dependency)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class TestFramework:
    def test_descriptor_keys(self):
        framework = Framework.model_validate({
            "name": "hono",
            "displayName": "Hono",
            "hasUI": False,
            "testingDependencies": [{"name": "vitest", "version": "^2"}],
            "testingScripts": [{"name": "test", "command": "vitest run"}],
        })
        assert framework.label == "Hono"
        assert framework.testing_dependencies[0].name == "vitest"
        assert framework.testing_scripts[0].command == "vitest run"

    def test_has_ui_descriptor_key(self):
        assert Framework.model_validate({"name": "web", "hasUI": True}).has_ui is True
        assert Framework.model_validate({"name": "web", "has_ui": True}).has_ui is True
        assert Framework(name="api").has_ui is False

    def test_label_falls_back_to_name(self):
        assert Framework(name="hono").label == "hono"

    def test_frozen(self):
        framework = Framework(name="hono")
        with pytest.raises(ValidationError):
            framework.name = "other"

    def test_template_dir_not_serialized(self, tmp_path):
        framework = Framework(name="hono", template_dir=tmp_path)
        assert "template_dir" not in framework.model_dump()


class TestPackage:
    def test_alias_variants(self):
        pkg = Package.model_validate({
            "name": "drizzle",
            "frameworks": ["hono"],
            "canBeShared": True,
            "defaultSharedName": "db",
            "isUILibrary": False,
        })
        assert pkg.supported_frameworks == ["hono"]
        assert pkg.can_be_shared_package is True
        assert pkg.default_shared_name == "db"

    def test_supports_everything_when_unrestricted(self):
        assert Package(name="zod").supports("anything")

    def test_supports_listed_frameworks_only(self):
        pkg = Package.model_validate({"name": "mantine", "supportedFrameworks": ["react-vite"]})
        assert pkg.supports("react-vite")
        assert not pkg.supports("hono")

    def test_default_shared_name_falls_back_to_name(self):
        assert Package(name="zod").default_shared_name == "zod"

    def test_default_shared_name_is_sanitized(self):
        pkg = Package.model_validate({"name": "x", "sharedPackageDefaultName": "UI Kit"})
        assert pkg.default_shared_name == "ui-kit"

    def test_extra_option_prompts(self):
        pkg = Package.model_validate({
            "name": "drizzle",
            "extraOptionsPrompts": [{
                "name": "provider",
                "type": "list",
                "message": "Provider?",
                "choices": [{"name": "SQLite", "value": "sqlite"}],
            }],
        })
        prompt = pkg.extra_options_prompts[0]
        assert prompt.type == "list"
        assert prompt.choices[0].value == "sqlite"

    def test_unknown_prompt_type_rejected(self):
        with pytest.raises(ValidationError):
            Package.model_validate({
                "name": "x",
                "extraOptionsPrompts": [{"name": "a", "type": "slider", "message": "?"}],
            })


class TestExtraOptionPrompt:
    def _prompt(self, prompt_type: str, **extra) -> ExtraOptionPrompt:
        return ExtraOptionPrompt(name="opt", type=prompt_type, message="?", **extra)

    def test_declared_default_wins(self):
        assert self._prompt("input", default="x").default_answer() == "x"

    def test_empty_defaults_by_type(self):
        choices = [PromptChoice(name="A", value="a"), PromptChoice(name="B", value="b")]
        assert self._prompt("input").default_answer() == ""
        assert self._prompt("confirm").default_answer() is False
        assert self._prompt("checkbox").default_answer() == []
        assert self._prompt("list", choices=choices).default_answer() == "a"

    def test_coerce_confirm(self):
        prompt = self._prompt("confirm")
        assert prompt.coerce("yes") is True
        assert prompt.coerce("TRUE") is True
        assert prompt.coerce("no") is False

    def test_coerce_list_checks_choices(self):
        prompt = self._prompt("list", choices=[PromptChoice(name="Pg", value="postgres")])
        assert prompt.coerce(" postgres ") == "postgres"
        with pytest.raises(ValueError, match="not one of: postgres"):
            prompt.coerce("mysql")

    def test_coerce_checkbox(self):
        choices = [PromptChoice(name="A", value="a"), PromptChoice(name="B", value="b")]
        prompt = self._prompt("checkbox", choices=choices)
        assert prompt.coerce("a, b") == ["a", "b"]
        with pytest.raises(ValueError):
            prompt.coerce("a,c")

    def test_coerce_input_is_free_text(self):
        assert self._prompt("input").coerce("anything") == "anything"
