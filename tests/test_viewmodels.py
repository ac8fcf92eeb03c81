"""
Unit tests for the main window view models: aggregate check boxes,
collection mirroring, filtering and import commands.
"""

import asyncio
import threading

import pytest

from importer import ImportResult, ImportStatus, ModImporter
from mods import Version
from modpacks import Modpack
from viewmodels import ManagerViewModel, ModFamilyViewModel, fuzzy_match


def property_events(vm, name):
    events = []
    vm.property_changed.connect(
        lambda sender, changed: events.append(changed) if changed == name else None
    )
    return events


def groupings(vm):
    return list(vm.mod_version_groupings)


class TestFuzzyMatch:
    def test_empty_pattern_matches(self) -> None:
        assert fuzzy_match("anything", "") == (True, 0)

    def test_characters_in_order(self) -> None:
        assert fuzzy_match("Space Exploration", "spex")[0] is True
        assert fuzzy_match("abc", "acb")[0] is False

    def test_case_insensitive(self) -> None:
        assert fuzzy_match("Bob's Ores", "BOB")[0] is True

    def test_consecutive_match_scores_higher(self) -> None:
        _, tight = fuzzy_match("abcdef", "abc")
        _, loose = fuzzy_match("axbxcx", "abc")
        assert tight > loose


class TestAllModsEnabled:
    def test_empty_manager_is_false(self, manager_vm) -> None:
        assert manager_vm.all_mods_enabled is False

    def test_tracks_children(self, manager, manager_vm, make_mod) -> None:
        manager.add_mod(make_mod("alpha", enabled=True))
        assert manager_vm.all_mods_enabled is True

        manager.add_mod(make_mod("beta"))
        assert manager_vm.all_mods_enabled is None

        manager.find_mod("alpha", Version(1, 0, 0)).enabled = False
        assert manager_vm.all_mods_enabled is False

    def test_setting_true_enables_every_family_with_one_notification(
            self, manager, manager_vm, make_mod) -> None:
        manager.add_mod(make_mod("alpha"))
        manager.add_mod(make_mod("beta"))
        manager.add_mod(make_mod("gamma", factorio_version="0.18"))
        events = property_events(manager_vm, "all_mods_enabled")

        manager_vm.all_mods_enabled = True

        assert events == ["all_mods_enabled"]
        assert all(vm.is_enabled for vm in manager_vm.family_view_models)
        assert manager_vm.all_mods_enabled is True

    def test_setting_false_disables_every_family(self, manager, manager_vm, make_mod) -> None:
        manager.add_mod(make_mod("alpha", enabled=True))
        manager.add_mod(make_mod("beta"))

        manager_vm.all_mods_enabled = False

        assert all(not mod.enabled for m in manager.mod_managers for mod in m.mods)
        assert manager_vm.all_mods_enabled is False

    def test_indeterminate_cannot_be_set(self, manager_vm) -> None:
        with pytest.raises(ValueError):
            manager_vm.all_mods_enabled = None

    def test_setting_true_from_mixed_notifies_once(self, manager, manager_vm, make_mod) -> None:
        manager.add_mod(make_mod("alpha", enabled=True))
        manager.add_mod(make_mod("beta"))
        manager.add_mod(make_mod("gamma"))
        assert manager_vm.all_mods_enabled is None
        events = property_events(manager_vm, "all_mods_enabled")

        manager_vm.all_mods_enabled = True

        assert events == ["all_mods_enabled"]
        assert manager_vm.all_mods_enabled is True

    def test_setting_true_on_empty_manager_stays_false(self, manager_vm) -> None:
        events = property_events(manager_vm, "all_mods_enabled")

        manager_vm.all_mods_enabled = True

        assert manager_vm.all_mods_enabled is False
        assert events == ["all_mods_enabled"]

    def test_enabling_modpack_updates_mod_aggregate(
            self, manager, manager_vm, modpacks, make_mod) -> None:
        alpha = make_mod("alpha")
        manager.add_mod(alpha)
        manager.add_mod(make_mod("beta"))
        modpacks.append(Modpack("Pack", [alpha]))

        manager_vm.all_modpacks_enabled = True

        assert alpha.enabled is True
        assert manager_vm.all_mods_enabled is None


class TestAllModpacksEnabled:
    def test_tracks_children(self, manager_vm, modpacks) -> None:
        first = modpacks.create_modpack("One")
        modpacks.create_modpack("Two")
        assert manager_vm.all_modpacks_enabled is False

        first.enabled = True
        assert manager_vm.all_modpacks_enabled is None

    def test_setting_enables_all_with_one_notification(self, manager_vm, modpacks) -> None:
        modpacks.create_modpack("One")
        modpacks.create_modpack("Two")
        events = property_events(manager_vm, "all_modpacks_enabled")

        manager_vm.all_modpacks_enabled = True

        assert events == ["all_modpacks_enabled"]
        assert all(pack.enabled for pack in modpacks)

    def test_indeterminate_cannot_be_set(self, manager_vm) -> None:
        with pytest.raises(ValueError):
            manager_vm.all_modpacks_enabled = None

    def test_setting_false_from_mixed_notifies_once(self, manager_vm, modpacks) -> None:
        modpacks.create_modpack("One").enabled = True
        modpacks.create_modpack("Two")
        assert manager_vm.all_modpacks_enabled is None
        events = property_events(manager_vm, "all_modpacks_enabled")

        manager_vm.all_modpacks_enabled = False

        assert events == ["all_modpacks_enabled"]
        assert manager_vm.all_modpacks_enabled is False
        assert not any(pack.enabled for pack in modpacks)

    def test_setting_true_without_modpacks_stays_false(self, manager_vm) -> None:
        manager_vm.all_modpacks_enabled = True

        assert manager_vm.all_modpacks_enabled is False

    def test_reset_recomputes(self, manager_vm, modpacks) -> None:
        modpacks.create_modpack("One")
        modpacks.reset([Modpack("A", enabled=True), Modpack("B", enabled=True)])

        assert manager_vm.all_modpacks_enabled is True


class TestModMirroring:
    def test_new_game_version_adds_grouping(self, manager, manager_vm, make_mod) -> None:
        manager.add_mod(make_mod("alpha", factorio_version="0.18"))
        manager.add_mod(make_mod("beta", factorio_version="1.1"))

        headers = [g.header for g in groupings(manager_vm)]
        assert headers == ["Factorio 1.1", "Factorio 0.18"]

    def test_existing_managers_are_mirrored(self, manager, modpacks, make_mod) -> None:
        from locations import Locations

        manager.add_mod(make_mod("alpha", enabled=True))
        vm = ManagerViewModel(manager, modpacks, ModImporter(manager, Locations("unused")))

        assert len(groupings(vm)) == 1
        assert vm.all_mods_enabled is True

    def test_family_view_models_follow_families(self, manager, manager_vm, make_mod) -> None:
        alpha = make_mod("alpha")
        manager.add_mod(alpha)
        manager.add_mod(make_mod("beta"))
        grouping = groupings(manager_vm)[0]
        assert [vm.name for vm in grouping.families_view] == ["alpha", "beta"]

        manager.remove_mod(alpha)

        assert [vm.name for vm in grouping.family_view_models] == ["beta"]
        assert [vm.name for vm in grouping.families_view] == ["beta"]

    def test_removed_family_no_longer_notifies(self, manager, manager_vm, make_mod) -> None:
        alpha = make_mod("alpha")
        manager.add_mod(alpha)
        manager.add_mod(make_mod("beta"))
        manager.remove_mod(alpha)
        events = property_events(manager_vm, "all_mods_enabled")

        alpha.enabled = True

        assert events == []

    def test_family_reset_rebuilds_view_models(self, manager, manager_vm, make_mod) -> None:
        manager.add_mod(make_mod("alpha"))
        mod_manager = manager.get_mod_manager(Version(1, 1))
        grouping = groupings(manager_vm)[0]
        old_vm = grouping.family_view_models[0]

        mod_manager.families.reset(list(mod_manager.families))

        assert len(grouping.family_view_models) == 1
        assert grouping.family_view_models[0] is not old_vm

    def test_family_view_model_version_text(self, manager, make_mod) -> None:
        manager.add_mod(make_mod("alpha", "1.0.0"))
        manager.add_mod(make_mod("alpha", "1.2.0"))
        family = manager.get_mod_manager(Version(1, 1)).get_family("alpha")
        vm = ModFamilyViewModel(family)

        assert vm.version_text == "1.2.0"
        family.mods[0].enabled = True
        assert vm.version_text == "1.0.0"
        assert vm.is_enabled is True


class TestModpackMirroring:
    def test_add_and_remove(self, manager_vm, modpacks) -> None:
        pack = modpacks.create_modpack("Pack")
        assert manager_vm.get_modpack_view_model(pack) is not None
        assert len(manager_vm.modpacks) == 1

        modpacks.remove(pack)

        assert manager_vm.get_modpack_view_model(pack) is None
        assert len(manager_vm.modpacks) == 0

    def test_removed_modpack_is_disconnected(self, manager_vm, modpacks) -> None:
        modpacks.create_modpack("Keep")
        pack = modpacks.create_modpack("Drop")
        modpacks.remove(pack)
        events = property_events(manager_vm, "all_modpacks_enabled")

        pack.enabled = True

        assert events == []

    def test_reset_replaces_view_models(self, manager_vm, modpacks) -> None:
        modpacks.create_modpack("Old")
        new_pack = Modpack("New")

        modpacks.reset([new_pack])

        assert [vm.name for vm in manager_vm.modpacks] == ["New"]
        assert manager_vm.get_modpack_view_model(new_pack).modpack is new_pack

    def test_mod_count_follows_modpack(self, manager_vm, modpacks, make_mod) -> None:
        pack = modpacks.create_modpack("Pack")
        vm = manager_vm.get_modpack_view_model(pack)
        events = property_events(vm, "mod_count")

        pack.add_mod(make_mod("alpha"))

        assert vm.mod_count == 1
        assert events == ["mod_count"]


class TestFilters:
    def test_mod_filter(self, manager, manager_vm, make_mod) -> None:
        manager.add_mod(make_mod("iron-belts"))
        manager.add_mod(make_mod("copper-wire"))

        manager_vm.mod_filter = "iron"

        grouping = groupings(manager_vm)[0]
        assert [vm.name for vm in grouping.families_view] == ["iron-belts"]

        manager_vm.mod_filter = ""
        assert len(grouping.families_view) == 2

    def test_mod_filter_applies_to_new_groupings(self, manager, manager_vm, make_mod) -> None:
        manager_vm.mod_filter = "wire"

        manager.add_mod(make_mod("iron-belts"))
        manager.add_mod(make_mod("copper-wire"))

        grouping = groupings(manager_vm)[0]
        assert grouping.filter == "wire"
        assert [vm.name for vm in grouping.families_view] == ["copper-wire"]

    def test_modpack_filter_orders_by_score(self, manager_vm, modpacks) -> None:
        modpacks.create_modpack("Rails")
        modpacks.create_modpack("Space Age")
        modpacks.create_modpack("Spaghetti")

        manager_vm.modpack_filter = "spa"

        names = [vm.name for vm in manager_vm.modpacks]
        assert "Rails" not in names
        assert set(names) == {"Space Age", "Spaghetti"}

    def test_modpacks_sorted_by_name(self, manager_vm, modpacks) -> None:
        modpacks.create_modpack("beta")
        modpacks.create_modpack("Alpha")

        assert [vm.name for vm in manager_vm.modpacks] == ["Alpha", "beta"]


class TestCommands:
    def test_create_modpack_starts_renaming(self, manager_vm, modpacks) -> None:
        first = manager_vm.create_modpack()
        second = manager_vm.create_modpack()

        assert first.name == "Новый модпак"
        assert second.name == "Новый модпак 2"
        assert manager_vm.get_modpack_view_model(second).is_renaming is True
        assert len(modpacks) == 2

    def test_rename_ignores_blank_names(self, manager_vm) -> None:
        pack = manager_vm.create_modpack()
        vm = manager_vm.get_modpack_view_model(pack)

        vm.name = "   "
        assert pack.name == "Новый модпак"

        vm.name = " Rails "
        vm.is_renaming = False
        assert pack.name == "Rails"

    def test_add_mods_without_dialog(self, manager_vm) -> None:
        assert manager_vm.add_mods() is False

    def test_add_mods_cancelled(self, manager, modpacks, locations) -> None:
        vm = ManagerViewModel(
            manager, modpacks, ModImporter(manager, locations), file_dialog=lambda: []
        )
        assert vm.add_mods() is False

    def test_menu_items(self, manager_vm) -> None:
        items = manager_vm.get_file_menu_items()

        assert [item.shortcut for item in items] == ["Ctrl+O", "Ctrl+N"]
        assert items[1].callback == manager_vm.create_modpack


class BlockingImporter:
    """Importer that keeps the worker busy until released."""

    def __init__(self):
        self.release = threading.Event()
        self.batches = 0

    def begin_batch(self):
        self.batches += 1

    async def import_file_async(self, path, log_callback=None):
        while not self.release.is_set():
            await asyncio.sleep(0.01)
        return ImportResult(path, ImportStatus.MISSING, message=f"Файл не найден: {path}")


def run_import(vm, path):
    result = asyncio.run(vm.importer.import_file_async(path))
    vm.apply_import_result(result)
    return result


def wait_for_import(qapp, vm):
    assert vm.import_worker.wait(10000)
    qapp.processEvents()


class TestImport:
    def test_imported_mod_joins_manager(self, manager, manager_vm, make_mod_zip, log_records) -> None:
        result = run_import(manager_vm, make_mod_zip("alpha"))

        assert result.status == ImportStatus.IMPORTED
        assert manager.contains_mod("alpha", Version(1, 0, 0))
        assert [g.header for g in groupings(manager_vm)] == ["Factorio 1.1"]
        assert ("SUCCESS", result.message) in log_records

    def test_duplicate_notifies(self, manager, manager_vm, make_mod, make_mod_zip) -> None:
        manager.add_mod(make_mod("alpha"))
        notifications = []
        manager_vm.notification.connect(lambda level, message: notifications.append(level))

        result = run_import(manager_vm, make_mod_zip("alpha"))

        assert result.status == ImportStatus.DUPLICATE
        assert notifications == ["INFO"]

    def test_failure_notifies(self, manager_vm, tmp_path) -> None:
        path = tmp_path / "broken.zip"
        path.write_bytes(b"junk")
        notifications = []
        manager_vm.notification.connect(lambda level, message: notifications.append(level))

        result = run_import(manager_vm, str(path))

        assert result.status == ImportStatus.FAILED
        assert notifications == ["ERROR"]

    def test_mod_added_while_copying_becomes_duplicate(
            self, manager, manager_vm, make_mod, make_mod_zip) -> None:
        result = asyncio.run(manager_vm.importer.import_file_async(make_mod_zip("alpha")))
        manager.add_mod(make_mod("alpha"))
        notifications = []
        manager_vm.notification.connect(lambda level, message: notifications.append(level))

        manager_vm.apply_import_result(result)

        assert result.status == ImportStatus.DUPLICATE
        assert notifications == ["INFO"]
        assert len(manager.get_mod_manager(Version(1, 1)).mods) == 1


class TestImportWorker:
    def test_start_import_applies_results(
            self, qapp, manager, manager_vm, make_mod_zip, log_records) -> None:
        paths = [
            make_mod_zip("alpha", filename="a.zip"),
            make_mod_zip("alpha", filename="b.zip"),
            make_mod_zip("beta"),
        ]

        assert manager_vm.start_import(paths) is True
        wait_for_import(qapp, manager_vm)

        assert len(manager.get_mod_manager(Version(1, 1)).families) == 2
        assert ("INFO", "Импорт завершён: добавлено 2 из 3") in log_records
        assert any(level == "DEBUG" for level, _ in log_records)

    def test_add_mods_imports_selected_files(
            self, qapp, manager, modpacks, locations, make_mod_zip) -> None:
        path = make_mod_zip("alpha")
        vm = ManagerViewModel(
            manager, modpacks, ModImporter(manager, locations), file_dialog=lambda: [path]
        )

        assert vm.add_mods() is True
        wait_for_import(qapp, vm)

        assert manager.contains_mod("alpha", Version(1, 0, 0))

    def test_second_start_is_rejected_while_running(self, qapp, manager, modpacks) -> None:
        importer = BlockingImporter()
        vm = ManagerViewModel(manager, modpacks, importer)
        notifications = []
        vm.notification.connect(lambda level, message: notifications.append(level))

        assert vm.start_import(["first.zip"]) is True
        first = vm.import_worker
        try:
            assert vm.start_import(["second.zip"]) is False
            assert vm.import_worker is first
            assert notifications == ["WARNING"]
        finally:
            importer.release.set()
            wait_for_import(qapp, vm)

        assert importer.batches == 1
        assert vm.is_importing is False


class TestDispose:
    def test_dispose_stops_mirroring(self, manager, manager_vm, modpacks, make_mod) -> None:
        manager_vm.dispose()

        manager.add_mod(make_mod("alpha"))
        modpacks.create_modpack("Pack")

        assert len(groupings(manager_vm)) == 0
        assert len(manager_vm.modpacks) == 0
