"""
Teacher display fields cached on CSST rows.

The cache is rebuilt on write: whenever a CSST row changes teacher, or a
masjid_teachers row is updated, every alive CSST row pointing at it is refreshed
in the same transaction.
"""

from typing import Any, Dict, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.core.models import ClassSectionSubjectTeacher, MasjidTeacher


def teacher_display_name(teacher: MasjidTeacher) -> Optional[str]:
    return teacher.full_name_snap or teacher.user_name_snap


def build_teacher_snapshot(teacher: Optional[MasjidTeacher]) -> Optional[Dict[str, Any]]:
    if teacher is None:
        return None
    return {
        "id": str(teacher.id),
        "user_id": str(teacher.user_id),
        "name": teacher_display_name(teacher),
        "title": teacher.title,
    }


def set_teacher(row: ClassSectionSubjectTeacher, teacher: Optional[MasjidTeacher]) -> None:
    row.teacher_id = teacher.id if teacher else None
    row.teacher_snapshot = build_teacher_snapshot(teacher)
    row.teacher_name_snap = teacher_display_name(teacher) if teacher else None


def set_assistant_teacher(row: ClassSectionSubjectTeacher, teacher: Optional[MasjidTeacher]) -> None:
    row.assistant_teacher_id = teacher.id if teacher else None
    row.assistant_teacher_snapshot = build_teacher_snapshot(teacher)
    row.assistant_teacher_name_snap = teacher_display_name(teacher) if teacher else None


async def refresh_for_teacher(db: AsyncSession, teacher: MasjidTeacher) -> int:
    """Rewrite snapshots on every alive CSST row of the teacher's masjid that references it. Caller commits."""
    result = await db.execute(
        select(ClassSectionSubjectTeacher).where(
            ClassSectionSubjectTeacher.masjid_id == teacher.masjid_id,
            ClassSectionSubjectTeacher.deleted_at.is_(None),
            or_(
                ClassSectionSubjectTeacher.teacher_id == teacher.id,
                ClassSectionSubjectTeacher.assistant_teacher_id == teacher.id,
            ),
        )
    )
    rows = result.scalars().all()
    for row in rows:
        if row.teacher_id == teacher.id:
            set_teacher(row, teacher)
        if row.assistant_teacher_id == teacher.id:
            set_assistant_teacher(row, teacher)
    return len(rows)
