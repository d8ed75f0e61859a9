"""
Unit Tests for ProfileQueryService
Tests for: search, exact filters, pagination, dashboard roll-ups
"""
import pytest

from studentdesk.schemas.profile import ProfileCreate
from studentdesk.services.profile_service import ProfileService
from studentdesk.services.stats_service import ProfileQueryService, escape_like, total_pages


@pytest.fixture
def create_profile(db_session, make_user, profile_factory):
    """Create a student with a profile built from profile_factory overrides"""
    async def _create(**overrides):
        user = await make_user()
        return await ProfileService(db_session).create(
            user, ProfileCreate.model_validate(profile_factory(**overrides))
        )
    return _create


class TestHelpers:

    @pytest.mark.parametrize("total,limit,pages", [(0, 10, 0), (10, 10, 1), (15, 10, 2), (101, 100, 2)])
    def test_total_pages(self, total, limit, pages):
        assert total_pages(total, limit) == pages

    def test_escape_like(self):
        assert escape_like("50%_off") == "50\\%\\_off"


class TestListFiltered:
    """Search and filters over all profiles"""

    @pytest.mark.asyncio
    async def test_search_matches_names_and_student_id(self, db_session, create_profile):
        await create_profile(student_id="CS001", first_name="John", last_name="Doe")
        await create_profile(student_id="CS002", first_name="Jane", last_name="Smith")
        await create_profile(student_id="DOE-77", first_name="Ravi", last_name="Kumar")
        await create_profile(student_id="ME004", first_name="Anil", last_name="Rao")

        profiles, total = await ProfileQueryService(db_session).list_filtered(search="doe")

        assert total == 2
        assert {p.student_id for p in profiles} == {"CS001", "DOE-77"}

    @pytest.mark.asyncio
    async def test_search_and_filters_intersect(self, db_session, create_profile):
        await create_profile(student_id="CS001", last_name="Doe", course="Computer Science")
        await create_profile(student_id="EE001", last_name="Doe", course="Electronics")
        await create_profile(student_id="CS002", last_name="Smith", course="Computer Science")

        profiles, total = await ProfileQueryService(db_session).list_filtered(
            search="doe", course="Computer Science"
        )

        assert total == 1
        assert profiles[0].student_id == "CS001"

    @pytest.mark.asyncio
    async def test_course_filter_is_exact(self, db_session, create_profile):
        await create_profile(student_id="CS001", course="Computer Science")
        await create_profile(student_id="CS002", course="Computer Science Honours")

        profiles, total = await ProfileQueryService(db_session).list_filtered(course="Computer Science")

        assert total == 1
        assert profiles[0].student_id == "CS001"

    @pytest.mark.asyncio
    async def test_year_and_department_filters(self, db_session, create_profile):
        await create_profile(student_id="A1", year=1, department="Engineering")
        await create_profile(student_id="A2", year=2, department="Engineering")
        await create_profile(student_id="A3", year=2, department="Science")

        profiles, total = await ProfileQueryService(db_session).list_filtered(year=2, department="Engineering")

        assert total == 1
        assert profiles[0].student_id == "A2"

    @pytest.mark.asyncio
    async def test_wildcards_in_search_are_literal(self, db_session, create_profile):
        await create_profile(student_id="CS001")

        _, total = await ProfileQueryService(db_session).list_filtered(search="%")

        assert total == 0

    @pytest.mark.asyncio
    async def test_pagination_newest_first(self, db_session, create_profile):
        for index in range(15):
            await create_profile(student_id=f"S{index:03d}")

        service = ProfileQueryService(db_session)
        first_page, total = await service.list_filtered(page=1, limit=10)
        second_page, _ = await service.list_filtered(page=2, limit=10)

        assert total == 15
        assert len(first_page) == 10
        assert len(second_page) == 5
        assert total_pages(total, 10) == 2
        assert first_page[0].student_id == "S014"
        assert second_page[-1].student_id == "S000"

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty(self, db_session, create_profile):
        await create_profile(student_id="S001")

        profiles, total = await ProfileQueryService(db_session).list_filtered(page=3, limit=10)

        assert profiles == []
        assert total == 1


class TestDashboardStats:

    @pytest.mark.asyncio
    async def test_empty_store(self, db_session):
        stats = await ProfileQueryService(db_session).dashboard_stats()

        assert stats.total_students == 0
        assert stats.fee_stats.total_fees == 0
        assert stats.fee_stats.total_pending == 0
        assert stats.course_stats == []
        assert stats.year_stats == []

    @pytest.mark.asyncio
    async def test_sums_and_groups(self, db_session, create_profile):
        await create_profile(student_id="A1", course="CS", year=1, total_fees=100000, fees_paid=40000)
        await create_profile(student_id="A2", course="CS", year=2, total_fees=100000, fees_paid=100000)
        await create_profile(student_id="A3", course="EE", year=2, total_fees=80000, fees_paid=20000)

        stats = await ProfileQueryService(db_session).dashboard_stats()

        assert stats.total_students == 3
        assert stats.fee_stats.total_fees == 280000
        assert stats.fee_stats.total_paid == 160000
        assert stats.fee_stats.total_pending == 120000
        assert {c.course: c.count for c in stats.course_stats} == {"CS": 2, "EE": 1}
        assert [(y.year, y.count) for y in stats.year_stats] == [(1, 1), (2, 2)]
