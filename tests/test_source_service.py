"""
Tests for the source write path, the cached listing and highlight rendering.
"""

import pytest
import pytest_asyncio

from syncscript.core.error_handlers import ForbiddenError, NotFoundError, ValidationException
from syncscript.models.membership import Role
from syncscript.models.source import Source
from syncscript.schemas.annotation import AnnotationCreate, PositionIn
from syncscript.schemas.source import SourceCreate, SourceUpdate
from syncscript.schemas.vault import VaultCreate
from syncscript.services.source_service import SourceService

TEXT = "Attention is all you need. Recurrence is not required for sequence transduction."


@pytest.fixture
def owner(make_user):
    return make_user("owner@example.com", "Owner")


@pytest.fixture
def contributor(make_user):
    return make_user("contrib@example.com", "Contributor")


@pytest.fixture
def viewer(make_user):
    return make_user("viewer@example.com", "Viewer")


@pytest_asyncio.fixture
async def vault(services, db, owner, contributor, viewer, add_member):
    record = (await services.vaults.create_vault(db, owner.id, VaultCreate(name="Research"))).record
    add_member(contributor, record.id, Role.CONTRIBUTOR)
    add_member(viewer, record.id, Role.VIEWER)
    return record


class TestCreateSource:

    @pytest.mark.asyncio
    async def test_link_is_enriched_with_page_metadata(self, services, db, contributor, vault, metadata_fetcher):
        outcome = await services.sources.create_source(
            db, contributor.id, SourceCreate(vault_id=vault.id, url="https://example.com")
        )

        metadata_fetcher.fetch.assert_awaited_once_with("https://example.com")
        assert outcome.fully_applied
        assert outcome.record.title == "Example Domain"
        assert outcome.record.metadata == {"description": "An example page"}
        assert outcome.record.added_by_id == contributor.id

    @pytest.mark.asyncio
    async def test_supplied_title_wins_over_page_title(self, services, db, owner, vault):
        outcome = await services.sources.create_source(
            db, owner.id, SourceCreate(vault_id=vault.id, url="https://example.com", title="My title")
        )
        assert outcome.record.title == "My title"
        assert outcome.record.metadata["description"] == "An example page"

    @pytest.mark.asyncio
    async def test_failed_enrichment_falls_back_to_url(self, services, db, owner, vault, metadata_fetcher):
        metadata_fetcher.fetch.return_value = None

        outcome = await services.sources.create_source(
            db, owner.id, SourceCreate(vault_id=vault.id, url="https://slow.example.com/page")
        )

        assert outcome.degraded == ["metadata"]
        assert outcome.record.title == "https://slow.example.com/page"
        assert outcome.record.metadata == {"description": None}
        assert db.get(Source, outcome.record.id) is not None

    @pytest.mark.asyncio
    async def test_uploaded_file_is_not_fetched(self, services, db, owner, vault, metadata_fetcher):
        file_url = "https://syncscript-test.s3.us-east-1.amazonaws.com/uploads/abc-paper.txt"
        outcome = await services.sources.create_source(
            db, owner.id, SourceCreate(vault_id=vault.id, file_url=file_url, title="paper.txt", content=TEXT)
        )

        metadata_fetcher.fetch.assert_not_awaited()
        assert outcome.record.file_url == file_url
        assert outcome.record.url == file_url
        assert outcome.record.has_content

    @pytest.mark.asyncio
    async def test_vault_group_is_notified(self, services, db, contributor, vault, socket_server):
        outcome = await services.sources.create_source(
            db, contributor.id, SourceCreate(vault_id=vault.id, url="https://example.com")
        )

        added = socket_server.events("source_added")
        assert len(added) == 1
        assert added[0]["to"] == f"vault:{vault.id}"
        assert added[0]["data"]["id"] == outcome.record.id
        assert added[0]["data"]["vaultId"] == vault.id

    @pytest.mark.asyncio
    async def test_broadcast_failure_does_not_fail_the_write(self, services, db, owner, vault, socket_server):
        socket_server.fail = True
        outcome = await services.sources.create_source(
            db, owner.id, SourceCreate(vault_id=vault.id, url="https://example.com")
        )
        assert outcome.degraded == ["broadcast"]
        assert db.get(Source, outcome.record.id) is not None

    @pytest.mark.asyncio
    async def test_every_side_effect_down(self, services, db, owner, vault, socket_server, fake_cache,
                                          metadata_fetcher, monkeypatch):
        socket_server.fail = True
        fake_cache.available = False
        metadata_fetcher.fetch.return_value = None
        monkeypatch.setattr(services.audit, "append", lambda *args, **kwargs: False)

        outcome = await services.sources.create_source(
            db, owner.id, SourceCreate(vault_id=vault.id, url="https://example.com")
        )

        assert outcome.degraded == ["metadata", "audit", "cache", "broadcast"]
        assert db.get(Source, outcome.record.id) is not None

    @pytest.mark.asyncio
    async def test_viewer_is_forbidden(self, services, db, viewer, vault, socket_server):
        with pytest.raises(ForbiddenError):
            await services.sources.create_source(
                db, viewer.id, SourceCreate(vault_id=vault.id, url="https://example.com")
            )
        assert db.query(Source).count() == 0
        assert socket_server.emitted == []

    @pytest.mark.asyncio
    async def test_non_member_is_forbidden(self, services, db, vault, make_user):
        stranger = make_user("stranger@example.com")
        with pytest.raises(ForbiddenError):
            await services.sources.create_source(
                db, stranger.id, SourceCreate(vault_id=vault.id, url="https://example.com")
            )


class TestSourceCreateValidation:

    def test_requires_url_or_file(self):
        with pytest.raises(ValueError):
            SourceCreate(vault_id="v1")

    @pytest.mark.parametrize("url", ["ftp://example.com", "example.com", "javascript:alert(1)", "https://"])
    def test_rejects_non_http_urls(self, url):
        with pytest.raises(ValueError):
            SourceCreate(vault_id="v1", url=url)

    def test_accepts_camel_case_payload(self):
        source = SourceCreate.model_validate({"vaultId": "v1", "fileUrl": "https://bucket.example/x.txt"})
        assert source.vault_id == "v1"
        assert source.file_url == "https://bucket.example/x.txt"

    def test_update_needs_a_field(self):
        with pytest.raises(ValueError):
            SourceUpdate()


class TestSourceListing:

    @pytest.mark.asyncio
    async def test_repeated_reads_are_identical_until_a_write(self, services, db, owner, vault, fake_cache):
        await services.sources.create_source(db, owner.id, SourceCreate(vault_id=vault.id, url="https://a.example"))

        first = await services.sources.get_sources_for_vault(db, owner.id, vault.id)
        second = await services.sources.get_sources_for_vault(db, owner.id, vault.id)
        assert first == second
        assert fake_cache.hits == 1

        await services.sources.create_source(db, owner.id, SourceCreate(vault_id=vault.id, url="https://b.example"))

        third = await services.sources.get_sources_for_vault(db, owner.id, vault.id)
        assert len(third) == 2
        assert third[0]["url"] == "https://b.example"

    @pytest.mark.asyncio
    async def test_listing_includes_annotations(self, services, db, owner, vault):
        source = (await services.sources.create_source(
            db, owner.id, SourceCreate(vault_id=vault.id, file_url="https://files.example/a.txt", content=TEXT)
        )).record
        await services.sources.get_sources_for_vault(db, owner.id, vault.id)

        await services.annotations.create_annotation(
            db, owner.id, AnnotationCreate(source_id=source.id, content="key claim")
        )

        listing = await services.sources.get_sources_for_vault(db, owner.id, vault.id)
        assert [a["content"] for a in listing[0]["annotations"]] == ["key claim"]

    @pytest.mark.asyncio
    async def test_reads_fall_through_when_cache_is_down(self, services, db, owner, vault, fake_cache):
        await services.sources.create_source(db, owner.id, SourceCreate(vault_id=vault.id, url="https://a.example"))
        fake_cache.available = False

        listing = await services.sources.get_sources_for_vault(db, owner.id, vault.id)

        assert [s["url"] for s in listing] == ["https://a.example"]
        assert fake_cache.store == {}

    @pytest.mark.asyncio
    async def test_reads_work_without_a_cache(self, services, db, owner, vault, channel, metadata_fetcher):
        uncached = SourceService(services.membership, services.audit, metadata_fetcher, cache=None, channel=channel)
        outcome = await uncached.create_source(db, owner.id, SourceCreate(vault_id=vault.id, url="https://a.example"))

        assert "cache" not in outcome.degraded
        listing = await uncached.get_sources_for_vault(db, owner.id, vault.id)
        assert [s["id"] for s in listing] == [outcome.record.id]

    @pytest.mark.asyncio
    async def test_viewer_can_read(self, services, db, owner, viewer, vault):
        await services.sources.create_source(db, owner.id, SourceCreate(vault_id=vault.id, url="https://a.example"))
        assert len(await services.sources.get_sources_for_vault(db, viewer.id, vault.id)) == 1

    @pytest.mark.asyncio
    async def test_non_member_cannot_read(self, services, db, vault, make_user):
        stranger = make_user("stranger@example.com")
        with pytest.raises(ForbiddenError):
            await services.sources.get_sources_for_vault(db, stranger.id, vault.id)


class TestUpdateSource:

    @pytest.mark.asyncio
    async def test_update_content_notifies_vault(self, services, db, owner, contributor, vault, socket_server, fake_cache):
        source = (await services.sources.create_source(
            db, owner.id, SourceCreate(vault_id=vault.id, file_url="https://files.example/a.txt")
        )).record
        await services.sources.get_sources_for_vault(db, owner.id, vault.id)

        outcome = await services.sources.update_source_content(
            db, contributor.id, source.id, SourceUpdate(content=TEXT, description="paper")
        )

        assert outcome.record.has_content
        assert outcome.record.updated_at is not None
        assert outcome.record.metadata["description"] == "paper"
        updated = socket_server.events("source_updated")
        assert updated[0]["to"] == f"vault:{vault.id}"
        assert updated[0]["data"]["updatedAt"] is not None
        assert f"sources:{vault.id}" not in fake_cache.store

    @pytest.mark.asyncio
    async def test_viewer_cannot_update(self, services, db, owner, viewer, vault):
        source = (await services.sources.create_source(
            db, owner.id, SourceCreate(vault_id=vault.id, url="https://a.example")
        )).record
        with pytest.raises(ForbiddenError):
            await services.sources.update_source_content(db, viewer.id, source.id, SourceUpdate(title="x"))

    @pytest.mark.asyncio
    async def test_unknown_source(self, services, db, owner, vault):
        with pytest.raises(NotFoundError):
            await services.sources.update_source_content(db, owner.id, "missing", SourceUpdate(title="x"))


class TestHighlights:

    @pytest.mark.asyncio
    async def test_scenario_anchored_note_renders_exact_slice(self, services, db, owner, contributor, vault):
        source = (await services.sources.create_source(
            db, owner.id, SourceCreate(vault_id=vault.id, file_url="https://files.example/a.txt", content=TEXT)
        )).record

        note = (await services.annotations.create_annotation(
            db, contributor.id,
            AnnotationCreate(
                source_id=source.id,
                content="the thesis",
                position=PositionIn(start_offset=10, end_offset=25, selected_text=TEXT[10:25]),
            ),
        )).record
        whole = (await services.annotations.create_annotation(
            db, contributor.id, AnnotationCreate(source_id=source.id, content="good paper")
        )).record

        assert note.position == {"startOffset": 10, "endOffset": 25, "selectedText": TEXT[10:25]}

        highlights = services.sources.render_highlights(db, owner.id, source.id)
        assert highlights.length == len(TEXT)
        assert "".join(s.text for s in highlights.segments) == TEXT
        marked = [s for s in highlights.segments if s.type == "highlight"]
        assert [(s.annotation_id, s.text) for s in marked] == [(note.id, TEXT[10:25])]
        assert [a.id for a in highlights.unanchored] == [whole.id]

    @pytest.mark.asyncio
    async def test_source_without_text(self, services, db, owner, vault):
        source = (await services.sources.create_source(
            db, owner.id, SourceCreate(vault_id=vault.id, url="https://a.example")
        )).record
        with pytest.raises(ValidationException) as exc_info:
            services.sources.render_highlights(db, owner.id, source.id)
        assert exc_info.value.error_code == "NO_TEXT_CONTENT"
