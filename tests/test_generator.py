"""Tests for the run wrapper and CLI (monogen.generator).

Covers:
- CLI parsing and config_from_args
- Generator steps: load, resolve, create, install
- main() exit codes and error reporting
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from monogen.config import GeneratorConfig, PackageSelection
from monogen.errors import ConfigurationError, GeneratorError, NotFoundError
from monogen.generator import (
    STEP_NAMES,
    Generator,
    _parse_option,
    _parse_shared,
    build_parser,
    config_from_args,
    main,
)
from monogen.metadata.hooks import HookKind
from monogen.scaffolder.prompts import OverwriteChoice, StaticPrompter
from monogen.tracking import CreationTracker


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

pytestmark = pytest.mark.unit


def _args(*argv: str):
    return build_parser().parse_args(list(argv))


@pytest.fixture
def flavored(catalog_root: Path, make_descriptor, make_file) -> Path:
    """Package ``r`` with one ``list`` prompt read by a hook and a template."""
    root = catalog_root / "packages" / "r"
    make_descriptor(root, {
        "name": "r",
        "extraOptionsPrompts": [{
            "name": "flavor",
            "type": "list",
            "message": "Which flavor?",
            "choices": [
                {"name": "Plain", "value": "plain"},
                {"name": "Spicy", "value": "spicy"},
            ],
            "default": "plain",
        }],
    })
    make_file(root, "scripts/dependencies.py", """
        def get_dependencies(config, frameworks, packages):
            flavor = config.selection_for("r").extra_options["flavor"]
            return [{"name": "r-" + flavor, "version": "^1.0.0"}]
    """)
    make_file(root, "files/flavor.txt.j2", "{{ package.extra_options.flavor }}\n")
    return root


# ---------------------------------------------------------------------------
# CLI parsing
# ---------------------------------------------------------------------------


class TestParser:
    def test_parse_shared(self):
        selection = _parse_shared("drizzle=db")
        assert selection.package == "drizzle"
        assert selection.is_shared
        assert selection.shared_name == "db"

    def test_parse_shared_without_name(self):
        selection = _parse_shared("zod")
        assert selection.installation.package_name is None
        assert selection.shared_name == "zod"

    def test_repeatable_flags(self):
        args = _args("-f", "hono", "--package", "zod", "--package", "x", "--shared", "drizzle=db")
        assert args.package == ["zod", "x"]
        assert args.shared == ["drizzle=db"]

    def test_parse_option(self):
        assert _parse_option("drizzle.provider=postgres") == ("drizzle", "provider", "postgres")
        assert _parse_option("p.url=a=b") == ("p", "url", "a=b")

    @pytest.mark.parametrize("value", ["drizzle", "drizzle=postgres", ".provider=x", "drizzle.=x"])
    def test_parse_option_malformed(self, value: str):
        with pytest.raises(ConfigurationError):
            _parse_option(value)

    def test_step_names(self):
        assert list(STEP_NAMES.values()) == ["LOAD", "RESOLVE", "CREATE", "INSTALL"]


class TestConfigFromArgs:
    def test_framework_required(self, tmp_path: Path):
        with pytest.raises(ConfigurationError):
            config_from_args(_args("--workspace", str(tmp_path)))

    def test_values(self, tmp_path: Path, catalog_root: Path):
        config = config_from_args(_args(
            "--name", "web",
            "--framework", "api",
            "--description", "A web app",
            "--port", "4100",
            "--package", "q",
            "--shared", "p=data",
            "--author", "Jane <jane@example.com>",
            "--license", "Apache-2.0",
            "--templates-dir", str(catalog_root),
            "--workspace", str(tmp_path),
            "--install",
        ))
        assert config.app_name == "web"
        assert config.port == 4100
        assert config.should_install
        assert config.templates_dir == catalog_root
        assert config.metadata.license == "Apache-2.0"
        assert [s.package for s in config.direct_selections] == ["q"]
        assert config.shared_selections[0].shared_name == "data"

    @pytest.mark.asyncio
    async def test_port_defaults_to_next_tracked(self, tmp_path: Path):
        tracker = CreationTracker(tmp_path / ".app-generator" / "apps.json")
        await tracker.register_port("old", 4007)
        config = config_from_args(_args("-f", "api", "--workspace", str(tmp_path)))
        assert config.port == 4008

    def test_option_sets_extra_options(self, tmp_path: Path):
        config = config_from_args(_args(
            "-f", "api", "--workspace", str(tmp_path),
            "--shared", "p", "--option", "p.mode=fast",
        ))
        assert config.selection_for("p").extra_options == {"mode": "fast"}

    def test_option_for_unselected_package(self, tmp_path: Path):
        with pytest.raises(ConfigurationError) as exc_info:
            config_from_args(_args(
                "-f", "api", "--workspace", str(tmp_path), "--option", "p.mode=fast"
            ))
        assert "not selected" in exc_info.value.message

    def test_duplicate_package(self, tmp_path: Path):
        with pytest.raises(GeneratorError):
            config_from_args(_args(
                "-f", "api", "--workspace", str(tmp_path), "--package", "q", "--shared", "q"
            ))


# ---------------------------------------------------------------------------
# Generator steps
# ---------------------------------------------------------------------------


class TestGenerator:
    def test_load_catalog_registers_hooks(self, config: GeneratorConfig, catalog_root, make_file):
        make_file(catalog_root / "packages" / "q", "scripts/post-install.py", """
            def exec(config, frameworks, packages):
                return None
        """)
        generator = Generator(config)
        generator.load_catalog()
        assert generator.frameworks.names() == ["api"]
        assert "q" in generator.packages
        assert generator.hooks.has("package:q", HookKind.POST_INSTALL)

    def test_load_catalog_missing_root(self, tmp_path: Path):
        generator = Generator(GeneratorConfig(framework="api", templates_dir=tmp_path / "none"))
        with pytest.raises(ConfigurationError):
            generator.load_catalog()

    @pytest.mark.asyncio
    async def test_resolve_fills_defaults(self, catalog_root: Path, workspace: Path):
        config = GeneratorConfig(framework="api", templates_dir=catalog_root, workspace_dir=workspace)
        generator = Generator(config)
        generator.load_catalog()
        await generator.resolve_selections()
        assert config.app_name == "api-app"
        assert config.description == "An API"

    @pytest.mark.asyncio
    async def test_resolve_unknown_framework(self, config: GeneratorConfig):
        config.framework = "nope"
        generator = Generator(config)
        generator.load_catalog()
        with pytest.raises(NotFoundError) as exc_info:
            await generator.resolve_selections()
        assert exc_info.value.options == ["api"]

    @pytest.mark.asyncio
    async def test_resolve_unknown_package(self, config: GeneratorConfig):
        config.add_selected_package(PackageSelection(package="nope"))
        generator = Generator(config)
        generator.load_catalog()
        with pytest.raises(NotFoundError):
            await generator.resolve_selections()

    @pytest.mark.asyncio
    async def test_resolve_invalid_name(self, config: GeneratorConfig):
        config.app_name = "Bad Name"
        generator = Generator(config)
        generator.load_catalog()
        with pytest.raises(ConfigurationError):
            await generator.resolve_selections()

    @pytest.mark.asyncio
    async def test_resolve_non_shareable(self, config: GeneratorConfig):
        config.add_selected_package(_parse_shared("q"))
        generator = Generator(config)
        generator.load_catalog()
        with pytest.raises(ConfigurationError) as exc_info:
            await generator.resolve_selections()
        assert "cannot be installed as a shared package" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_resolve_shared_default_name(self, config: GeneratorConfig):
        config.add_selected_package(_parse_shared("p"))
        generator = Generator(config)
        generator.load_catalog()
        await generator.resolve_selections()
        selection = config.selection_for("p")
        assert selection.shared_name == "db"
        assert not selection.installation.use_existing

    @pytest.mark.asyncio
    async def test_resolve_reuses_tracked_shared_package(self, config: GeneratorConfig):
        await CreationTracker(config.tracking_path).register_shared_package("old", "data", "p")
        config.shared_package_path("data").mkdir(parents=True)
        config.add_selected_package(_parse_shared("p"))
        generator = Generator(config)
        generator.load_catalog()
        await generator.resolve_selections()
        selection = config.selection_for("p")
        assert selection.shared_name == "data"
        assert selection.installation.use_existing

    @pytest.mark.asyncio
    async def test_resolve_uses_prompt_defaults(self, config: GeneratorConfig, flavored: Path):
        config.add_selected_package(PackageSelection(package="r"))
        prompter = StaticPrompter()
        generator = Generator(config, prompter=prompter)
        generator.load_catalog()
        await generator.resolve_selections()
        assert config.selection_for("r").extra_options == {"flavor": "plain"}
        assert prompter.asked == ["extra-options:r"]

    @pytest.mark.asyncio
    async def test_resolve_keeps_command_line_answer(
        self, config: GeneratorConfig, flavored: Path
    ):
        selection = PackageSelection(package="r")
        selection.set_extra_options({"flavor": " spicy"})
        config.add_selected_package(selection)
        prompter = StaticPrompter(extra_options={"r": {"flavor": "plain"}})
        generator = Generator(config, prompter=prompter)
        generator.load_catalog()
        await generator.resolve_selections()
        assert selection.extra_options == {"flavor": "spicy"}

    @pytest.mark.asyncio
    async def test_resolve_rejects_unknown_choice(self, config: GeneratorConfig, flavored: Path):
        selection = PackageSelection(package="r")
        selection.set_extra_options({"flavor": "sour"})
        config.add_selected_package(selection)
        generator = Generator(config)
        generator.load_catalog()
        with pytest.raises(ConfigurationError) as exc_info:
            await generator.resolve_selections()
        assert "r.flavor" in exc_info.value.message
        assert "plain, spicy" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_answer_reaches_hook_and_templates(
        self, config: GeneratorConfig, workspace: Path, flavored: Path
    ):
        config.add_selected_package(PackageSelection(package="r"))
        prompter = StaticPrompter(extra_options={"r": {"flavor": "spicy"}})
        app_path = await Generator(config, prompter=prompter).run()
        manifest = json.loads((app_path / "package.json").read_text(encoding="utf-8"))
        assert manifest["dependencies"]["r-spicy"] == "^1.0.0"
        assert "r-plain" not in manifest["dependencies"]
        assert (app_path / "flavor.txt").read_text(encoding="utf-8") == "spicy\n"

    @pytest.mark.asyncio
    async def test_run(self, config: GeneratorConfig, workspace: Path):
        config.add_selected_package(PackageSelection(package="q"))
        config.add_selected_package(_parse_shared("p"))
        app_path = await Generator(config).run()
        assert app_path == workspace / "apps" / "demo"
        assert (app_path / "package.json").is_file()
        assert (workspace / "packages" / "db" / "package.json").is_file()

    @pytest.mark.asyncio
    async def test_run_with_install(self, config: GeneratorConfig, workspace: Path):
        config.should_install = True
        with patch(
            "monogen.generator.run_command", new=AsyncMock(return_value=(0, "ok", ""))
        ) as mock_run:
            await Generator(config).run()
        mock_run.assert_awaited_once_with("pnpm install", cwd=workspace)

    @pytest.mark.asyncio
    async def test_install_failure(self, config: GeneratorConfig):
        with patch(
            "monogen.generator.run_command", new=AsyncMock(return_value=(1, "", "ERR_PNPM"))
        ):
            with pytest.raises(GeneratorError) as exc_info:
                await Generator(config).install()
        assert exc_info.value.details == "ERR_PNPM"

    @pytest.mark.asyncio
    async def test_collision_with_new_name(self, config: GeneratorConfig, workspace: Path):
        config.app_path.mkdir(parents=True)
        prompter = StaticPrompter(OverwriteChoice.NEW_NAME, names=["demo-2"])
        app_path = await Generator(config, prompter=prompter).run()
        assert app_path == workspace / "apps" / "demo-2"
        assert config.app_name == "demo-2"


# ---------------------------------------------------------------------------
# main()
# ---------------------------------------------------------------------------


class TestMain:
    def _argv(self, catalog_root: Path, workspace: Path, *extra: str) -> list[str]:
        return [
            "--templates-dir", str(catalog_root),
            "--workspace", str(workspace),
            "--yes",
            *extra,
        ]

    def test_success(self, catalog_root: Path, workspace: Path):
        main(self._argv(catalog_root, workspace, "-f", "api", "-n", "cli-app", "--package", "q"))
        assert (workspace / "apps" / "cli-app" / "q.txt").is_file()

    def test_option_flag(self, catalog_root: Path, workspace: Path, flavored: Path):
        main(self._argv(
            catalog_root, workspace, "-f", "api", "--package", "r", "--option", "r.flavor=spicy"
        ))
        app = workspace / "apps" / "api-app"
        assert (app / "flavor.txt").read_text(encoding="utf-8") == "spicy\n"

    def test_invalid_option_exits_1(self, catalog_root: Path, workspace: Path, flavored: Path):
        with pytest.raises(SystemExit) as exc_info:
            main(self._argv(
                catalog_root, workspace, "-f", "api", "--package", "r", "--option", "r.flavor=sour"
            ))
        assert exc_info.value.code == 1

    def test_missing_framework_exits_1(self, catalog_root: Path, workspace: Path):
        with pytest.raises(SystemExit) as exc_info:
            main(self._argv(catalog_root, workspace))
        assert exc_info.value.code == 1

    def test_unknown_package_exits_1(self, catalog_root: Path, workspace: Path):
        with pytest.raises(SystemExit) as exc_info:
            main(self._argv(catalog_root, workspace, "-f", "api", "--package", "nope"))
        assert exc_info.value.code == 1

    def test_abort_exits_0(self, catalog_root: Path, workspace: Path):
        (workspace / "apps" / "taken").mkdir(parents=True)
        with pytest.raises(SystemExit) as exc_info:
            main(self._argv(catalog_root, workspace, "-f", "api", "-n", "taken"))
        assert exc_info.value.code == 0

    def test_unexpected_error_exits_1(self, catalog_root: Path, workspace: Path):
        with patch.object(Generator, "run", side_effect=RuntimeError("boom")):
            with pytest.raises(SystemExit) as exc_info:
                main(self._argv(catalog_root, workspace, "-f", "api"))
        assert exc_info.value.code == 1
