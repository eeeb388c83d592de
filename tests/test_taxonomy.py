from datetime import date

from blogcorpus.content.models import ContentItem, Module
from blogcorpus.findings import FindingKind
from blogcorpus.taxonomy import build_tag_index, build_taxonomy


def _item(slug: str, *, module: str | None = None, tags: tuple[str, ...] = ()) -> ContentItem:
    return ContentItem(
        slug=slug,
        title=slug.title(),
        published_date=date(2024, 1, 1),
        module=module,
        tags=frozenset(tags),
        source_path=f"content/posts/{slug}.md",
    )


def _module(key: str, *members: str) -> Module:
    return Module(key=key, title=key.title(), member_slugs=members, source_path="content/modules.yml")


def test_consistent_modules_produce_no_findings() -> None:
    items = [_item("post-a", module="craft"), _item("post-b", module="craft"), _item("loose")]
    result = build_taxonomy(items, [_module("craft", "post-b", "post-a")], workers=2)

    assert result.findings == []
    assert result.index.members == {"craft": ("post-b", "post-a")}
    assert result.index.module_of("post-a") == "craft"
    assert result.index.module_of("loose") is None


def test_orphaned_module_member_is_reported_once() -> None:
    items = [_item("post-a", module="craft")]
    result = build_taxonomy(items, [_module("craft", "post-a", "post-b")])

    assert [finding.kind for finding in result.findings] == [FindingKind.ORPHANED_MODULE_MEMBER]
    finding = result.findings[0]
    assert finding.slug == "craft"
    assert "'post-b'" in finding.detail
    assert result.index.members["craft"] == ("post-a",)


def test_unknown_module_reference() -> None:
    result = build_taxonomy([_item("post-a", module="ghost")], [])

    assert len(result.findings) == 1
    assert result.findings[0].kind is FindingKind.UNKNOWN_MODULE_REFERENCE
    assert result.findings[0].slug == "post-a"


def test_item_missing_from_module_members_is_a_mismatch() -> None:
    items = [_item("post-a", module="craft"), _item("post-b", module="craft")]
    result = build_taxonomy(items, [_module("craft", "post-a")])

    assert [(f.kind, f.slug) for f in result.findings] == [
        (FindingKind.MODULE_MEMBERSHIP_MISMATCH, "post-b")
    ]


def test_member_declaring_other_module_is_a_mismatch() -> None:
    items = [_item("post-a", module="style")]
    modules = [_module("craft", "post-a"), _module("style", "post-a")]
    result = build_taxonomy(items, modules)

    kinds = [(f.kind, f.slug) for f in result.findings]
    assert kinds == [(FindingKind.MODULE_MEMBERSHIP_MISMATCH, "post-a")]
    assert "listed by module 'craft'" in result.findings[0].detail
    assert result.index.members == {"craft": (), "style": ("post-a",)}


def test_repeated_module_key_is_reported() -> None:
    items = [_item("post-a", module="craft")]
    modules = [_module("craft", "post-a"), _module("craft")]
    result = build_taxonomy(items, modules)

    assert [(f.kind, f.slug) for f in result.findings] == [(FindingKind.DUPLICATE_MODULE_KEY, "craft")]
    assert "declared 2 times" in result.findings[0].detail
    assert result.index.members == {"craft": ("post-a",)}


def test_unparseable_member_is_not_an_orphan() -> None:
    items = [_item("post-a", module="craft")]
    result = build_taxonomy(
        items,
        [_module("craft", "post-a", "broken", "missing")],
        unreadable_slugs={"broken"},
    )

    assert [f.detail for f in result.findings] == ["module 'craft' lists 'missing' but no such item exists"]
    assert result.index.members["craft"] == ("post-a",)


def test_findings_are_sorted_regardless_of_worker_count() -> None:
    items = [_item(f"post-{n}", module=f"m{n}") for n in range(6)]
    modules = [_module(f"m{n}", f"post-{n}", f"missing-{n}") for n in reversed(range(6))]

    serial = build_taxonomy(items, modules, workers=1)
    parallel = build_taxonomy(items, modules, workers=4)

    assert serial.findings == parallel.findings
    assert [f.slug for f in serial.findings] == [f"m{n}" for n in range(6)]
    assert list(parallel.index.modules) == [f"m{n}" for n in range(6)]


def test_tag_index_maps_tags_to_sorted_slugs() -> None:
    items = [
        _item("zeta", tags=("testing", "naming")),
        _item("alpha", tags=("testing",)),
    ]

    assert build_tag_index(items) == {
        "naming": ("zeta",),
        "testing": ("alpha", "zeta"),
    }
