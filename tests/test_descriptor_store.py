from __future__ import annotations

import os

from modhub.core.modules.descriptors import DescriptorStore
from modhub.core.modules.models import DependencySpec, ModuleDescriptor

from .helpers.modules import write_module


def test_exists_requires_manifest_file(modules_root):
    os.makedirs(os.path.join(modules_root, "NoManifest"))
    write_module(modules_root, "Blog")
    store = DescriptorStore(modules_root=modules_root)
    assert store.exists("Blog") is True
    assert store.exists("NoManifest") is False
    assert store.exists("Missing") is False


def test_exists_rejects_path_like_names(modules_root):
    write_module(modules_root, "Blog")
    store = DescriptorStore(modules_root=modules_root)
    assert store.exists("../modules/Blog") is False
    assert store.exists("..") is False
    assert store.exists("") is False


def test_corrupt_manifest_exists_but_has_no_config(modules_root):
    mod_dir = os.path.join(modules_root, "Broken")
    os.makedirs(mod_dir)
    with open(os.path.join(mod_dir, "module.json"), "w", encoding="utf-8") as f:
        f.write("{not json")
    store = DescriptorStore(modules_root=modules_root)
    assert store.exists("Broken") is True
    assert store.get_config("Broken") is None


def test_manifest_without_name_is_invalid(modules_root):
    write_module(modules_root, "Nameless", {"version": "1.0.0"})
    store = DescriptorStore(modules_root=modules_root)
    assert store.get_config("Nameless") is None
    assert "Nameless" not in store.list_all()


def test_get_config_is_memoized_per_store(modules_root):
    write_module(modules_root, "Blog", {"name": "Blog", "version": "1.0.0"})
    store = DescriptorStore(modules_root=modules_root)
    first = store.get_config("Blog")
    write_module(modules_root, "Blog", {"name": "Blog", "version": "2.0.0"})
    assert store.get_config("Blog") is first
    assert store.get_config("Blog").version == "1.0.0"

    # a fresh store (new process) re-reads
    assert DescriptorStore(modules_root=modules_root).get_config("Blog").version == "2.0.0"

    store.forget("Blog")
    assert store.get_config("Blog").version == "2.0.0"


def test_dependencies_map_and_list_forms_normalize(modules_root):
    write_module(modules_root, "A", {"name": "A", "dependencies": {"B": "^1.0", "C": "*"}})
    write_module(modules_root, "D", {"name": "D", "dependencies": ["B", "C"]})
    store = DescriptorStore(modules_root=modules_root)
    assert store.get_config("A").dependencies == [DependencySpec(name="B", constraint="^1.0"), DependencySpec(name="C", constraint="*")]
    assert store.get_config("D").dependencies == [DependencySpec(name="B"), DependencySpec(name="C")]


def test_descriptor_loose_fields():
    desc = ModuleDescriptor.model_validate({"name": " Blog ", "version": 2, "providers": "Blog\\Provider", "extra_key": True})
    assert desc.name == "Blog"
    assert desc.version == "2"
    assert desc.providers == ["Blog\\Provider"]
    assert desc.to_listing(enabled=False, path="/x")["extra_key"] is True


def test_list_all_merges_enabled_and_path(modules_root):
    write_module(modules_root, "Blog", {"name": "Blog", "version": "1.2.0", "description": "A blog"})
    write_module(modules_root, "Shop")
    os.makedirs(os.path.join(modules_root, "assets"))
    with open(os.path.join(modules_root, "enabled.json"), "w", encoding="utf-8") as f:
        f.write("[]")
    store = DescriptorStore(modules_root=modules_root)

    listing = store.list_all(enabled=["Blog"])
    assert sorted(listing) == ["Blog", "Shop"]
    assert listing["Blog"]["enabled"] is True
    assert listing["Shop"]["enabled"] is False
    assert listing["Blog"]["description"] == "A blog"
    assert listing["Blog"]["path"] == os.path.abspath(os.path.join(modules_root, "Blog"))


def test_list_all_missing_root_is_empty(tmp_path):
    store = DescriptorStore(modules_root=str(tmp_path / "nope"))
    assert store.list_all() == {}


def test_custom_manifest_filename(modules_root):
    mod_dir = os.path.join(modules_root, "Blog")
    os.makedirs(mod_dir)
    with open(os.path.join(mod_dir, "plugin.json"), "w", encoding="utf-8") as f:
        f.write('{"name": "Blog"}')
    store = DescriptorStore(modules_root=modules_root, manifest_filename="plugin.json")
    assert store.exists("Blog")
    assert store.get_config("Blog").name == "Blog"


def test_names_with_spaces_and_non_ascii_letters_are_modules(modules_root):
    write_module(modules_root, "Blog Module", {"name": "Blog Module", "version": "1.0.0"})
    write_module(modules_root, "Café", {"name": "Café"})
    store = DescriptorStore(modules_root=modules_root)
    assert store.exists("Blog Module") is True
    assert store.exists("Café") is True
    assert sorted(store.list_all()) == ["Blog Module", "Café"]


def test_names_that_are_not_a_single_path_component_do_not_exist(modules_root):
    write_module(modules_root, "Blog")
    store = DescriptorStore(modules_root=modules_root)
    for name in (".", "Blog/", " Blog", "Blog ", "Blog\x00", os.sep + "Blog", None):
        assert store.exists(name) is False
