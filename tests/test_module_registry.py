import pytest

from flowmate.server.engine.module_registry import ModuleRegistry, build_registry, get_registry
from flowmate.server.errors import ModuleNotFound
from flowmate.server.modules import builtin_modules
from flowmate.server.modules.social.twitter import SearchRecentModule

from .conftest import EchoModule, ItemsModule


def test_search_own_path_with_limit_one_returns_that_module():
    registry = build_registry(builtin_modules())
    for descriptor in registry.descriptors():
        results = registry.search(descriptor.path, 1)
        assert [r["path"] for r in results] == [descriptor.path]


def test_search_is_case_insensitive_and_in_declaration_order():
    registry = build_registry(builtin_modules())
    results = registry.search("TWITTER", 10)
    assert [r["path"] for r in results] == [
        "social.twitter.search_recent",
        "social.twitter.post_tweet",
        "social.twitter.post_thread",
    ]


def test_search_matches_signature_and_respects_limit():
    registry = build_registry(builtin_modules())
    results = registry.search("max_results?: number", 5)
    assert [r["path"] for r in results] == ["social.twitter.search_recent"]
    assert len(registry.search("", 3)) == 3
    assert registry.search("twitter", 0) == []


def test_search_result_shape():
    registry = build_registry([EchoModule()])
    assert registry.search("echo", 10) == [
        {
            "path": "test.util.echo",
            "description": "Return the value it was given",
            "signature": "(value: object)",
        }
    ]


def test_signature_marks_optional_inputs():
    assert SearchRecentModule().signature == "(query: string, max_results?: number)"


@pytest.mark.parametrize(
    "path,segment",
    [
        ("nope.util.echo", "category"),
        ("test.nope.echo", "module"),
        ("test.util.nope", "function"),
        ("test.util", "path"),
    ],
)
def test_resolve_names_missing_segment(path, segment):
    registry = build_registry([EchoModule()])
    with pytest.raises(ModuleNotFound) as exc_info:
        registry.resolve(path)
    assert exc_info.value.segment == segment
    assert exc_info.value.path == path


def test_get_module_returns_fresh_instances():
    registry = build_registry([EchoModule()])
    first = registry.get_module("test.util.echo")
    second = registry.get_module("test.util.echo")
    assert isinstance(first, EchoModule)
    assert first is not second


def test_register_rejects_duplicates_and_frozen_registry():
    registry = ModuleRegistry()
    registry.register(EchoModule())
    with pytest.raises(ValueError):
        registry.register(EchoModule())

    registry.freeze()
    with pytest.raises(ValueError):
        registry.register(ItemsModule())
    assert not registry.has_module("test.util.items")


def test_catalog_groups_by_category_and_module():
    registry = build_registry([EchoModule(), ItemsModule()])
    catalog = registry.catalog()
    assert [c["name"] for c in catalog] == ["test"]
    functions = catalog[0]["modules"][0]["functions"]
    assert [f["path"] for f in functions] == ["test.util.echo", "test.util.items"]


def test_process_registry_is_built_once_and_frozen():
    registry = get_registry()
    assert registry is get_registry()
    assert registry.has_module("ai.text.generate")
    with pytest.raises(ValueError, match="frozen"):
        registry.register(EchoModule())


def test_default_mock_output_is_fresh_per_call():
    first = ItemsModule().get_mock_output({})
    first["items"].append("mutated")
    assert ItemsModule().get_mock_output({}) == {"items": []}

    value = EchoModule().get_mock_output({})["value"]
    value["k"] = 1
    assert EchoModule().get_mock_output({}) == {"value": {}}
