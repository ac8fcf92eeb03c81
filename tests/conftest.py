"""Shared pytest fixtures for the test suite.

Fixture overview
----------------
make_mod       : factory for in-memory Mod objects (no files on disk)
make_mod_zip   : factory writing a Factorio mod archive into tmp_path
manager        : empty root Manager
locations      : Locations rooted in tmp_path
modpacks       : empty ModpackCollection
log_records    : (level, message) pairs logged by manager_vm
manager_vm     : ManagerViewModel over ``manager`` and an empty modpack list
qapp           : offscreen QApplication for widget tests
"""

import json
import os
import zipfile

import pytest

# Widget tests run without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from importer import ModImporter
from locations import Locations
from mods import Manager, Mod, ModInfo, Version
from modpacks import ModpackCollection
from viewmodels import ManagerViewModel


@pytest.fixture
def make_mod():
    def factory(name: str, version: str = "1.0.0", factorio_version: str = "1.1",
                enabled: bool = False) -> Mod:
        info = ModInfo(
            name=name,
            version=Version.parse(version),
            factorio_version=Version.parse(factorio_version),
            title=name.replace("-", " ").title()
        )
        return Mod(info, f"/mods/{name}_{version}.zip", enabled=enabled)
    return factory


@pytest.fixture
def make_mod_zip(tmp_path):
    def factory(name: str, version: str = "1.0.0", factorio_version: str = "1.1",
                folder: bool = True, filename: str = "") -> str:
        info = {
            "name": name,
            "version": version,
            "factorio_version": factorio_version,
            "title": name.title(),
            "author": "tester",
        }
        path = tmp_path / "incoming" / (filename or f"{name}_{version}.zip")
        path.parent.mkdir(parents=True, exist_ok=True)
        entry = f"{name}_{version}/info.json" if folder else "info.json"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr(entry, json.dumps(info))
            archive.writestr(f"{name}_{version}/data.lua", "-- data")
        return str(path)
    return factory


@pytest.fixture
def manager() -> Manager:
    return Manager()


@pytest.fixture
def locations(tmp_path) -> Locations:
    return Locations(str(tmp_path / "data"))


@pytest.fixture
def modpacks() -> ModpackCollection:
    return ModpackCollection()


@pytest.fixture
def log_records():
    return []


@pytest.fixture
def manager_vm(manager, modpacks, locations, log_records):
    def log(message, level):
        log_records.append((level, message))

    vm = ManagerViewModel(
        manager,
        modpacks,
        ModImporter(manager, locations),
        log_callback=log
    )
    yield vm


@pytest.fixture(scope="session")
def qapp():
    from PyQt6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication([])
    yield app
