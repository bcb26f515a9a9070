from pathlib import Path

import pytest

from custom_explorer.core.decorations import DecorationProvider
from custom_explorer.core.indexes import node_uri
from custom_explorer.core.models import Severity


@pytest.fixture
def severities():
    return {}


@pytest.fixture
def decorations(store, severities):
    return DecorationProvider(store, lambda path: severities.get(path, Severity.NONE))


def test_file_severity_comes_from_diagnostics(store, decorations, severities):
    node = store.add_file("/w/a.txt")
    severities["/w/a.txt"] = Severity.WARNING

    assert decorations.severity_for(node) is Severity.WARNING


def test_group_shows_worst_descendant_severity(store, decorations, severities):
    outer = store.add_group("outer")
    inner = store.add_group("inner", outer)
    store.add_file("/w/ok.txt", outer)
    store.add_file("/w/warn.txt", inner)
    severities["/w/warn.txt"] = Severity.WARNING

    assert decorations.severity_for(outer) is Severity.WARNING
    assert decorations.severity_for(inner) is Severity.WARNING

    store.add_file("/w/err.txt", outer)
    severities["/w/err.txt"] = Severity.ERROR
    assert decorations.severity_for(outer) is Severity.ERROR
    assert decorations.severity_for(inner) is Severity.WARNING


def test_error_stops_the_walk(store, severities):
    group = store.add_group("g")
    for name in ("a", "b", "c"):
        store.add_file(f"/w/{name}.txt", group)
    severities.update({"/w/a.txt": Severity.ERROR, "/w/b.txt": Severity.ERROR, "/w/c.txt": Severity.ERROR})
    asked = []

    def lookup(path):
        asked.append(path)
        return severities[path]

    assert DecorationProvider(store, lookup).severity_for(group) is Severity.ERROR
    assert len(asked) == 1


def test_empty_group_has_no_severity(store, decorations):
    assert decorations.severity_for(store.add_group("g")) is Severity.NONE


def test_default_source_reports_nothing(store):
    node = store.add_file("/w/a.txt")
    assert DecorationProvider(store).severity_for(node) is Severity.NONE


def test_severity_for_uri(store, decorations, severities):
    group = store.add_group("g")
    store.add_file("/w/a.txt", group)
    severities["/w/a.txt"] = Severity.ERROR

    assert decorations.severity_for_uri(Path("/w/a.txt").as_uri()) is Severity.ERROR
    assert decorations.severity_for_uri(node_uri(group)) is Severity.ERROR
    assert decorations.severity_for_uri("file:///unknown") is Severity.NONE


def test_affected_uris_are_deduplicated(store, decorations):
    group = store.add_group("g")
    store.add_file("/w/a.txt", group)
    store.add_file("/w/b.txt", group)

    uris = decorations.affected_uris(["/w/a.txt", "/w/b.txt", "/w/a.txt"])

    assert uris == [
        Path("/w/a.txt").as_uri(),
        node_uri(group),
        Path("/w/b.txt").as_uri(),
    ]


def test_same_named_groups_resolve_to_their_own_node(store, decorations, severities):
    first = store.add_group("Same")
    second = store.add_group("Same")
    store.add_file("/w/bad.txt", second)
    severities["/w/bad.txt"] = Severity.ERROR

    assert node_uri(first) != node_uri(second)
    assert store.find_by_uri(node_uri(second)) is second
    assert decorations.severity_for_uri(node_uri(second)) is Severity.ERROR
    assert decorations.severity_for_uri(node_uri(first)) is Severity.NONE


def test_affected_uris_cover_every_reference_to_a_path(store, decorations):
    g1 = store.add_group("G1")
    g2 = store.add_group("G2")
    store.add_file("/w/a.txt", g1)
    store.add_file("/w/a.txt", g2)

    uris = decorations.affected_uris(["/w/a.txt"])

    assert uris == [Path("/w/a.txt").as_uri(), node_uri(g1), node_uri(g2)]
