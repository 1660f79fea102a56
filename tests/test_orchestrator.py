"""Tests for the orchestrator's user-facing operations."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from termdeck.config.schema import Config, ModuleSpec, SessionSpec
from termdeck.core.lifecycle import StartOutcome


def web(auto: bool = True) -> SessionSpec:
    return SessionSpec(name="web", commands=("run build", "run serve"), auto_start=auto)


def api(auto: bool = True) -> SessionSpec:
    return SessionSpec(name="api", location="api/commands.json", auto_start=auto)


def write_api(root: Path, commands: list[str] | None = None) -> Path:
    path = root / "api" / "commands.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"commands": commands or ["run api"]}), encoding="utf-8")
    return path


class TestInitTeardown:
    """Test subscriptions and teardown."""

    def test_teardown_disposes_everything(self, tmp_path, make_orchestrator, terminals, file_watcher) -> None:
        write_api(tmp_path)
        orchestrator, _ = make_orchestrator(Config(terminals=[web(), api()]))
        orchestrator.start_all()

        orchestrator.teardown()

        assert terminals.live() == []
        assert file_watcher.active() == []
        assert terminals.listeners == []
        assert not orchestrator.active

    def test_external_close_is_cleaned_up(self, make_orchestrator, terminals) -> None:
        orchestrator, _ = make_orchestrator(Config(terminals=[web()]))
        orchestrator.start_all()

        terminals.last("web").close_externally()

        assert "web" not in orchestrator.registry

    def test_init_is_idempotent(self, make_orchestrator, terminals) -> None:
        orchestrator, _ = make_orchestrator()
        orchestrator.init()
        assert len(terminals.listeners) == 1


class TestStartAll:
    def test_only_auto_start_specs(self, make_orchestrator) -> None:
        orchestrator, _ = make_orchestrator(
            Config(terminals=[web(), SessionSpec(name="manual", commands=("x",))])
        )

        outcomes = orchestrator.start_all()

        assert outcomes == {"web": StartOutcome.STARTED}
        assert orchestrator.registry.names() == ["web"]

    def test_failure_does_not_abort_batch(self, make_orchestrator, terminals, ui) -> None:
        """One bad spec in a batch is reported and the rest still start."""
        terminals.fail_names.add("broken")
        orchestrator, _ = make_orchestrator(
            Config(
                terminals=[
                    SessionSpec(name="broken", commands=("x",), auto_start=True),
                    SessionSpec(name="empty", auto_start=True),
                    web(),
                ]
            )
        )

        outcomes = orchestrator.start_all()

        assert outcomes["broken"] is StartOutcome.FAILED
        assert outcomes["empty"] is StartOutcome.FAILED
        assert outcomes["web"] is StartOutcome.STARTED
        assert orchestrator.registry.names() == ["web"]

    def test_start_unknown_name(self, make_orchestrator, ui) -> None:
        orchestrator, _ = make_orchestrator()
        assert orchestrator.start("ghost") is StartOutcome.FAILED
        assert ui.of("error") == ["Terminal not found: ghost"]


class TestSelections:
    """Test picker-driven start and stop."""

    @pytest.mark.asyncio
    async def test_start_selected(self, make_orchestrator, ui) -> None:
        orchestrator, _ = make_orchestrator(Config(terminals=[web(False), api(False)]))
        ui.answers.append(["web"])

        outcomes = await orchestrator.start_selected()

        assert outcomes == {"web": StartOutcome.STARTED}
        _, items = ui.pickers[0]
        assert [(i.label, i.description) for i in items] == [
            ("web", "run build; run serve"),
            ("api", "api/commands.json"),
        ]

    @pytest.mark.asyncio
    async def test_empty_selection_is_info(self, make_orchestrator, ui) -> None:
        orchestrator, _ = make_orchestrator(Config(terminals=[web(False)]))

        assert await orchestrator.start_selected() == {}
        assert ui.of("info") == ["No terminals selected."]

    @pytest.mark.asyncio
    async def test_stop_selected_offers_running_only(self, make_orchestrator, ui, terminals) -> None:
        orchestrator, _ = make_orchestrator(
            Config(terminals=[web(), SessionSpec(name="idle", commands=("x",))])
        )
        orchestrator.start_all()
        ui.answers.append(["web"])

        assert await orchestrator.stop_selected() == ["web"]
        _, items = ui.pickers[0]
        assert [i.label for i in items] == ["web"]
        assert terminals.last("web").disposed

    @pytest.mark.asyncio
    async def test_stop_with_nothing_running(self, make_orchestrator, ui) -> None:
        orchestrator, _ = make_orchestrator(Config(terminals=[web(False)]))

        assert await orchestrator.stop_selected() == []
        assert await orchestrator.stop_one() is False
        assert ui.pickers == []
        assert ui.of("info") == ["No terminals are running."] * 2

    @pytest.mark.asyncio
    async def test_start_one_and_stop_one_by_pick(self, make_orchestrator, ui) -> None:
        orchestrator, _ = make_orchestrator(Config(terminals=[web(False)]))
        ui.answers.extend(["web", "web"])

        assert await orchestrator.start_one() is StartOutcome.STARTED
        assert await orchestrator.stop_one() is True
        assert len(orchestrator.registry) == 0

    @pytest.mark.asyncio
    async def test_start_one_by_name(self, make_orchestrator, ui) -> None:
        orchestrator, _ = make_orchestrator(Config(terminals=[web(False)]))

        assert await orchestrator.start_one("web") is StartOutcome.STARTED
        assert ui.pickers == []


class TestGroups:
    """Test group start and stop."""

    @pytest.mark.asyncio
    async def test_start_group_skips_unknown_member(self, tmp_path, make_orchestrator, ui) -> None:
        """An unknown member is an error; the other members still start."""
        write_api(tmp_path)
        orchestrator, _ = make_orchestrator(
            Config(terminals=[web(False), api(False)], groups={"stack": ["web", "ghost", "api"]})
        )

        outcomes = await orchestrator.start_group("stack")

        assert outcomes == {
            "ghost": StartOutcome.FAILED,
            "web": StartOutcome.STARTED,
            "api": StartOutcome.STARTED,
        }
        assert ui.of("error") == ["Terminal not found: ghost"]
        assert sorted(orchestrator.registry.names()) == ["api", "web"]

    @pytest.mark.asyncio
    async def test_start_group_by_pick(self, make_orchestrator, ui) -> None:
        orchestrator, _ = make_orchestrator(
            Config(terminals=[web(False)], groups={"front": ["web"], "back": []})
        )
        ui.answers.append("front")

        await orchestrator.start_group()

        _, items = ui.pickers[0]
        assert [(i.label, i.description) for i in items] == [("front", "web"), ("back", "")]
        assert orchestrator.registry.names() == ["web"]

    @pytest.mark.asyncio
    async def test_stop_group(self, make_orchestrator, ui) -> None:
        orchestrator, _ = make_orchestrator(
            Config(terminals=[web(), SessionSpec(name="idle", commands=("x",))],
                   groups={"all": ["web", "idle"]})
        )
        orchestrator.start_all()

        assert await orchestrator.stop_group("all") == ["web"]
        assert ui.of("info")[-1] == "Terminal 'idle' is not running."

    @pytest.mark.asyncio
    async def test_no_groups_defined(self, make_orchestrator, ui) -> None:
        orchestrator, _ = make_orchestrator(Config(terminals=[web(False)]))

        assert await orchestrator.start_group() == {}
        assert ui.of("warning") == ["No terminal groups defined."]

    @pytest.mark.asyncio
    async def test_unknown_group(self, make_orchestrator, ui) -> None:
        orchestrator, _ = make_orchestrator(Config(groups={"a": []}))

        assert await orchestrator.stop_group("b") == []
        assert ui.of("error") == ["Group not found: b"]


class TestModules:
    """Test module commands through the orchestrator."""

    @pytest.fixture
    def module_config(self, tmp_path: Path) -> Config:
        svc = tmp_path / "svc"
        svc.mkdir()
        (svc / "package.json").write_text(
            json.dumps({"scripts": {"lint": "eslint .", "test": "jest"}}), encoding="utf-8"
        )
        return Config(
            modules=[
                ModuleSpec(name="svc", location="svc"),
                ModuleSpec(name="svc-ci", location="svc", run_scripts=("lint", "test")),
            ]
        )

    @pytest.mark.asyncio
    async def test_run_module_script_picks_single_modules(self, make_orchestrator, module_config, ui) -> None:
        orchestrator, _ = make_orchestrator(module_config)
        ui.answers.extend(["svc", "lint"])

        assert await orchestrator.run_module_script() is StartOutcome.STARTED

        _, modules = ui.pickers[0]
        assert [m.label for m in modules] == ["svc"]
        assert orchestrator.registry.names() == ["svc - lint"]

    @pytest.mark.asyncio
    async def test_run_chained_picks_chained_modules(self, make_orchestrator, module_config, ui) -> None:
        orchestrator, _ = make_orchestrator(module_config)
        ui.answers.append("svc-ci")

        assert await orchestrator.run_chained_module_scripts() is StartOutcome.STARTED

        _, modules = ui.pickers[0]
        assert [(m.label, m.description) for m in modules] == [("svc-ci", "lint, test")]
        assert orchestrator.registry.names() == ["[Module] svc-ci"]

    @pytest.mark.asyncio
    async def test_chained_without_run_scripts(self, make_orchestrator, module_config, ui) -> None:
        orchestrator, _ = make_orchestrator(module_config)

        assert await orchestrator.run_chained_module_scripts("svc") is StartOutcome.FAILED
        assert ui.of("warning") == ["Module 'svc' has no runScripts."]

    @pytest.mark.asyncio
    async def test_unknown_module(self, make_orchestrator, ui) -> None:
        orchestrator, _ = make_orchestrator()

        assert await orchestrator.run_module_script("nope") is None
        assert ui.of("error") == ["Module not found: nope"]

    @pytest.mark.asyncio
    async def test_stop_commands_filter_by_tag(self, make_orchestrator, module_config, ui) -> None:
        """Stop pickers offer only sessions of their own kind."""
        module_config.terminals.append(web())
        orchestrator, _ = make_orchestrator(module_config)
        orchestrator.start_all()
        await orchestrator.run_module_script("svc", "lint")
        await orchestrator.run_chained_module_scripts("svc-ci")

        ui.answers.append(["svc - lint"])
        assert await orchestrator.stop_module_script() == ["svc - lint"]
        ui.answers.append(["[Module] svc-ci"])
        assert await orchestrator.stop_chained_module_scripts() == ["[Module] svc-ci"]

        assert [i.label for i in ui.pickers[0][1]] == ["svc - lint"]
        assert [i.label for i in ui.pickers[1][1]] == ["[Module] svc-ci"]
        assert orchestrator.registry.names() == ["web"]


class TestConfigChanges:
    """Test reactions to configuration edits."""

    def test_terminal_edits_reload_incrementally(self, make_orchestrator, terminals) -> None:
        orchestrator, loader = make_orchestrator(
            Config(terminals=[web(), SessionSpec(name="db", commands=("run db",), auto_start=True)])
        )
        orchestrator.start_all()
        db = terminals.last("db")

        loader.config = Config(
            terminals=[
                SessionSpec(name="web", commands=("run dev",), auto_start=True),
                SessionSpec(name="db", commands=("run db",), auto_start=True),
            ]
        )
        change = orchestrator.refresh_config()

        assert change is not None and change.affects("terminals")
        assert terminals.last("web").sent == ["run dev"]
        assert terminals.last("db") is db
        assert not db.disposed

    def test_group_edits_touch_no_session(self, make_orchestrator, terminals) -> None:
        orchestrator, loader = make_orchestrator(Config(terminals=[web()]))
        orchestrator.start_all()

        loader.config = Config(terminals=[web()], groups={"g": ["web"]})
        change = orchestrator.refresh_config()

        assert change is not None and change.changed == frozenset({"groups"})
        assert len(terminals.created) == 1
        assert orchestrator.config.groups == {"g": ["web"]}

    def test_unchanged_config(self, make_orchestrator) -> None:
        orchestrator, _ = make_orchestrator(Config(terminals=[web()]))
        assert orchestrator.refresh_config() is None

    def test_reload_is_full_reset(self, make_orchestrator, terminals) -> None:
        orchestrator, _ = make_orchestrator(Config(terminals=[web()]))
        orchestrator.start_all()
        first = terminals.last("web")

        assert orchestrator.reload() == 1

        assert first.disposed
        assert terminals.last("web") is not first
        assert orchestrator.registry.names() == ["web"]


class TestSessions:
    def test_lists_tags_and_watched_paths(self, tmp_path, make_orchestrator) -> None:
        path = write_api(tmp_path)
        orchestrator, _ = make_orchestrator(Config(terminals=[web(), api()]))
        orchestrator.start_all()

        rows = {info.name: info for info in orchestrator.sessions()}

        assert rows["web"].kind == "terminal"
        assert rows["web"].watched == ()
        assert rows["api"].watched == (path.resolve(),)
