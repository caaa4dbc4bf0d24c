"""Tests for grouping public events by theme category."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app.models.event import Event
from app.models.status import STATUS_ARCHIVED, EventStatusDefinition
from app.models.status_mapping import StatusCategoryMapping
from app.services.public_categorizer import PublicCategorizer

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def categorizer(db_session, storage):
    return PublicCategorizer(db_session, storage=storage)


def make_event(title, status, minutes=0, is_public=True):
    return Event(
        title=title,
        status=status,
        is_public=is_public,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


async def map_status(db_session, status_def, category_id, theme_id="t1"):
    db_session.add(
        StatusCategoryMapping(
            status_definition_id=status_def.id, theme_id=theme_id, category_id=category_id
        )
    )
    await db_session.commit()


class TestGroupPublicEvents:
    """Test the categorized public event listing."""

    @pytest.mark.asyncio
    async def test_groups_by_mapped_category(self, categorizer, db_session, installed_theme, make_status):
        """Test events land in their status's category, newest first."""
        doing = await make_status("Doing", order=1)
        shipped = await make_status("Shipped", order=2)
        await map_status(db_session, doing, "upcoming")
        await map_status(db_session, shipped, "release")
        db_session.add_all(
            [
                make_event("Old feature", "Doing", minutes=1),
                make_event("New feature", "Doing", minutes=5),
                make_event("v1.0", "Shipped", minutes=3),
            ]
        )
        await db_session.commit()

        grouped = await categorizer.group_public_events()

        assert grouped.theme_id == "t1"
        assert grouped.theme_name == "Test Theme"
        assert list(grouped.categories) == ["upcoming", "release", "feedback"]
        assert [e.title for e in grouped.categories["upcoming"]] == ["New feature", "Old feature"]
        assert [e.title for e in grouped.categories["release"]] == ["v1.0"]
        assert grouped.categories["feedback"] == []

    @pytest.mark.asyncio
    async def test_excludes_private_archived_and_unmapped(
        self, categorizer, db_session, installed_theme, make_status, reserved_statuses
    ):
        """Test only public events with a mapped, non-archived status appear."""
        doing = await make_status("Doing", order=1)
        await make_status("Someday", order=2)
        await map_status(db_session, doing, "upcoming")
        db_session.add_all(
            [
                make_event("Visible", "Doing", minutes=1),
                make_event("Private", "Doing", minutes=2, is_public=False),
                make_event("Unmapped", "Someday", minutes=3),
                make_event("Gone", STATUS_ARCHIVED, minutes=4),
            ]
        )
        await db_session.commit()

        grouped = await categorizer.group_public_events()

        titles = [e.title for events in grouped.categories.values() for e in events]
        assert titles == ["Visible"]

    @pytest.mark.asyncio
    async def test_archived_excluded_even_when_mapped(
        self, categorizer, db_session, installed_theme, reserved_statuses
    ):
        """Test archived events stay hidden whatever the mapping says."""
        result = await db_session.execute(
            select(EventStatusDefinition).where(EventStatusDefinition.display_name == STATUS_ARCHIVED)
        )
        archived = result.scalar_one()
        await map_status(db_session, archived, "feedback")
        db_session.add(make_event("Old", STATUS_ARCHIVED))
        await db_session.commit()

        grouped = await categorizer.group_public_events()

        assert grouped.categories["feedback"] == []

    @pytest.mark.asyncio
    async def test_ignores_other_theme_mappings(self, categorizer, db_session, installed_theme, make_status):
        """Test mappings recorded for a different theme are not used."""
        doing = await make_status("Doing")
        await map_status(db_session, doing, "upcoming", theme_id="other")
        db_session.add(make_event("Feature", "Doing"))
        await db_session.commit()

        grouped = await categorizer.group_public_events()

        assert all(events == [] for events in grouped.categories.values())

    @pytest.mark.asyncio
    async def test_stale_category_is_skipped(self, categorizer, db_session, installed_theme, make_status):
        """Test events mapped to a category the manifest dropped are left out."""
        doing = await make_status("Doing")
        await map_status(db_session, doing, "gone")
        db_session.add(make_event("Feature", "Doing"))
        await db_session.commit()

        grouped = await categorizer.group_public_events()

        assert "gone" not in grouped.categories
        assert all(events == [] for events in grouped.categories.values())

    @pytest.mark.asyncio
    async def test_no_theme(self, categorizer):
        grouped = await categorizer.group_public_events()

        assert grouped.theme_id == ""
        assert grouped.categories == {}

    @pytest.mark.asyncio
    async def test_broken_manifest(self, categorizer, storage, installed_theme):
        """Test an unusable manifest yields an empty view instead of an error."""
        (storage.current_dir / "theme.json").write_text("[]")

        grouped = await categorizer.group_public_events()

        assert grouped.categories == {}
