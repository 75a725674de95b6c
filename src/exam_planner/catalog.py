"""Read-only view of a course's content, sized in study blocks."""
from dataclasses import dataclass, field

from exam_planner.db import get_connection

# Per-module learning pass: quick read 1 + video 2 + deep read 3 + notes 1 + quiz 1
BLOCKS_PER_MODULE = 8
MOCK_EXAM_BLOCKS = 4
VIDEO_BLOCKS = 2


@dataclass
class ModuleInventory:
    id: str
    title: str
    order: int
    video_ids: list[str] = field(default_factory=list)
    note_ids: list[str] = field(default_factory=list)
    quiz_ids: list[str] = field(default_factory=list)
    flashcard_ids: list[str] = field(default_factory=list)
    activity_ids: list[str] = field(default_factory=list)

    @property
    def videos(self) -> int:
        return len(self.video_ids)

    @property
    def notes(self) -> int:
        return len(self.note_ids)

    @property
    def quizzes(self) -> int:
        return len(self.quiz_ids)

    @property
    def estimated_blocks(self) -> int:
        return self.videos * VIDEO_BLOCKS + self.notes + self.quizzes


@dataclass
class MockExam:
    id: str
    title: str


@dataclass
class CourseInventory:
    course_id: str
    modules: list[ModuleInventory]
    mock_exams: list[MockExam]
    videos_enabled: bool = True

    @property
    def total_flashcards(self) -> int:
        return sum(len(m.flashcard_ids) for m in self.modules)

    @property
    def total_activities(self) -> int:
        return sum(len(m.activity_ids) for m in self.modules)

    @property
    def minimum_study_time(self) -> int:
        """Minimum blocks needed: one learning pass per module plus every mock exam."""
        return len(self.modules) * BLOCKS_PER_MODULE + len(self.mock_exams) * MOCK_EXAM_BLOCKS

    def module(self, module_id: str) -> ModuleInventory | None:
        return next((m for m in self.modules if m.id == module_id), None)


def get_course_inventory(db_path: str, course_id: str) -> CourseInventory:
    conn = get_connection(db_path)
    course = conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,)).fetchone()
    module_rows = conn.execute(
        "SELECT * FROM modules WHERE course_id = ? ORDER BY position", (course_id,)
    ).fetchall()
    modules = {
        r["id"]: ModuleInventory(id=r["id"], title=r["title"], order=r["position"])
        for r in module_rows
    }

    items = conn.execute(
        """SELECT ci.id, ci.module_id, ci.content_type, q.id AS quiz_id, q.is_mock_exam
        FROM content_items ci
        JOIN modules m ON ci.module_id = m.id
        LEFT JOIN quizzes q ON q.content_item_id = ci.id
        WHERE m.course_id = ?
        ORDER BY m.position, ci.position""",
        (course_id,),
    ).fetchall()
    for item in items:
        module = modules[item["module_id"]]
        if item["content_type"] == "VIDEO":
            module.video_ids.append(item["id"])
        elif item["content_type"] == "NOTE":
            module.note_ids.append(item["id"])
        elif item["content_type"] == "QUIZ" and item["quiz_id"] and not item["is_mock_exam"]:
            module.quiz_ids.append(item["quiz_id"])

    for row in conn.execute(
        "SELECT id, module_id FROM flashcards WHERE course_id = ? ORDER BY id", (course_id,)
    ):
        if row["module_id"] in modules:
            modules[row["module_id"]].flashcard_ids.append(row["id"])
    for row in conn.execute(
        "SELECT id, module_id FROM learning_activities WHERE course_id = ? ORDER BY id", (course_id,)
    ):
        if row["module_id"] in modules:
            modules[row["module_id"]].activity_ids.append(row["id"])

    mocks = conn.execute(
        "SELECT id, title FROM quizzes WHERE course_id = ? AND is_mock_exam = 1 ORDER BY created_at, id",
        (course_id,),
    ).fetchall()
    conn.close()
    return CourseInventory(
        course_id=course_id,
        modules=list(modules.values()),
        mock_exams=[MockExam(id=r["id"], title=r["title"]) for r in mocks],
        videos_enabled=bool(course["videos_enabled"]) if course else True,
    )


def get_modules(db_path: str, course_id: str) -> list[dict]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT id, title, position FROM modules WHERE course_id = ? ORDER BY position",
        (course_id,),
    ).fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_course(db_path: str, course_id: str) -> dict | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,)).fetchone()
    conn.close()
    return dict(row) if row else None
