"""
Profile query service - filtered listing and dashboard roll-ups (admin only)
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, desc
from typing import List, Optional, Tuple

from studentdesk.models.student_profile import StudentProfile
from studentdesk.schemas.profile import CourseCount, DashboardStats, FeeStats, YearCount


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the search term matches literally"""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit > 0 else 0


class ProfileQueryService:
    """Read-only queries over all student profiles"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _filters(
        self,
        search: Optional[str] = None,
        course: Optional[str] = None,
        department: Optional[str] = None,
        year: Optional[int] = None,
    ) -> list:
        conditions = []

        # Search matches first name, last name or student id, OR-combined
        if search:
            pattern = f"%{escape_like(search)}%"
            conditions.append(
                or_(
                    StudentProfile.first_name.ilike(pattern, escape="\\"),
                    StudentProfile.last_name.ilike(pattern, escape="\\"),
                    StudentProfile.student_id.ilike(pattern, escape="\\"),
                )
            )

        # Exact-match filters, AND-combined with the search
        if course:
            conditions.append(StudentProfile.course == course)
        if department:
            conditions.append(StudentProfile.department == department)
        if year is not None:
            conditions.append(StudentProfile.year == year)

        return conditions

    async def list_filtered(
        self,
        search: Optional[str] = None,
        course: Optional[str] = None,
        department: Optional[str] = None,
        year: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[StudentProfile], int]:
        """
        One page of profiles, newest first, plus the total number of matches.
        Pagination is offset based: skip = (page - 1) * limit.
        """
        conditions = self._filters(search, course, department, year)

        count_query = select(func.count(StudentProfile.id)).where(*conditions)
        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            select(StudentProfile)
            .where(*conditions)
            .order_by(desc(StudentProfile.created_at), desc(StudentProfile.id))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.unique().scalars().all()), total

    async def dashboard_stats(self) -> DashboardStats:
        """Counts and fee sums over every profile, grouped by course and year"""
        total_students = await self.db.scalar(select(func.count(StudentProfile.id))) or 0

        fee_row = (
            await self.db.execute(
                select(
                    func.coalesce(func.sum(StudentProfile.total_fees), 0),
                    func.coalesce(func.sum(StudentProfile.fees_paid), 0),
                    func.coalesce(func.sum(StudentProfile.fees_pending), 0),
                )
            )
        ).one()

        course_rows = await self.db.execute(
            select(StudentProfile.course, func.count(StudentProfile.id).label("count"))
            .group_by(StudentProfile.course)
            .order_by(desc("count"), StudentProfile.course)
        )

        year_rows = await self.db.execute(
            select(StudentProfile.year, func.count(StudentProfile.id).label("count"))
            .group_by(StudentProfile.year)
            .order_by(StudentProfile.year)
        )

        return DashboardStats(
            total_students=total_students,
            fee_stats=FeeStats(
                total_fees=fee_row[0],
                total_paid=fee_row[1],
                total_pending=fee_row[2],
            ),
            course_stats=[CourseCount(course=course, count=count) for course, count in course_rows.all()],
            year_stats=[YearCount(year=year, count=count) for year, count in year_rows.all()],
        )
