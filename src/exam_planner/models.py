"""Data classes and enums for the planning domain."""
import json
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class TaskType(str, Enum):
    LEARN = "LEARN"
    REVIEW = "REVIEW"
    PRACTICE = "PRACTICE"


class ReviewSubtype(str, Enum):
    FLASHCARD = "FLASHCARD"
    ACTIVITY = "ACTIVITY"


class PlanEntryStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class SelfRating(str, Enum):
    """Self-assessed prior knowledge."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class LearnStatus(str, Enum):
    NOT_LEARNED = "NOT_LEARNED"
    LEARNED = "LEARNED"


class ReviewDifficulty(str, Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class ReviewItemType(str, Enum):
    FLASHCARD = "FLASHCARD"
    ACTIVITY = "ACTIVITY"


# Mon-Fri, Python weekday numbering
DEFAULT_STUDY_DAYS = (0, 1, 2, 3, 4)


@dataclass
class StudyPlanConfig:
    user_id: str
    course_id: str
    exam_date: date
    study_hours_per_week: float
    self_rating: SelfRating
    plan_created_at: datetime
    preferred_study_days: Optional[list[int]] = None
    plan_generation: int = 0
    orientation_completed: bool = False

    @property
    def study_days(self) -> tuple[int, ...]:
        if not self.preferred_study_days:
            return DEFAULT_STUDY_DAYS
        return tuple(sorted(set(self.preferred_study_days)))

    @classmethod
    def from_row(cls, row) -> "StudyPlanConfig":
        days = json.loads(row["preferred_study_days"]) if row["preferred_study_days"] else None
        return cls(
            user_id=row["user_id"],
            course_id=row["course_id"],
            exam_date=date.fromisoformat(row["exam_date"]),
            study_hours_per_week=row["study_hours_per_week"],
            self_rating=SelfRating(row["self_rating"]),
            plan_created_at=datetime.fromisoformat(row["plan_created_at"]),
            preferred_study_days=days,
            plan_generation=row["plan_generation"],
            orientation_completed=bool(row["orientation_completed"]),
        )


@dataclass
class StudyBlock:
    """One generated unit of the schedule, before it is persisted."""
    date: date
    task_type: TaskType
    estimated_blocks: int
    target_module_id: Optional[str] = None
    target_content_item_id: Optional[str] = None
    target_quiz_id: Optional[str] = None
    target_flashcard_ids: Optional[list[str]] = None
    review_subtype: Optional[ReviewSubtype] = None
    is_off_platform: bool = False
    order: int = 0
    entry_key: str = ""

    @property
    def targets(self) -> tuple:
        return (self.target_module_id, self.target_content_item_id, self.target_quiz_id)


@dataclass
class PlanEntry:
    id: int
    entry_key: str
    user_id: str
    course_id: str
    date: date
    task_type: TaskType
    estimated_blocks: int
    order: int
    status: PlanEntryStatus = PlanEntryStatus.PENDING
    review_subtype: Optional[ReviewSubtype] = None
    target_module_id: Optional[str] = None
    target_content_item_id: Optional[str] = None
    target_quiz_id: Optional[str] = None
    target_flashcard_ids: list[str] = field(default_factory=list)
    is_off_platform: bool = False
    actual_time_spent_seconds: Optional[int] = None
    completed_at: Optional[datetime] = None
    generation: int = 0

    @classmethod
    def from_row(cls, row) -> "PlanEntry":
        return cls(
            id=row["id"],
            entry_key=row["entry_key"],
            user_id=row["user_id"],
            course_id=row["course_id"],
            date=date.fromisoformat(row["date"]),
            task_type=TaskType(row["task_type"]),
            estimated_blocks=row["estimated_blocks"],
            order=row["position"],
            status=PlanEntryStatus(row["status"]),
            review_subtype=ReviewSubtype(row["review_subtype"]) if row["review_subtype"] else None,
            target_module_id=row["target_module_id"],
            target_content_item_id=row["target_content_item_id"],
            target_quiz_id=row["target_quiz_id"],
            target_flashcard_ids=json.loads(row["target_flashcard_ids"] or "[]"),
            is_off_platform=bool(row["is_off_platform"]),
            actual_time_spent_seconds=row["actual_time_spent_seconds"],
            completed_at=datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None,
            generation=row["generation"],
        )


@dataclass
class ModuleProgress:
    user_id: str
    course_id: str
    module_id: str
    learn_status: LearnStatus = LearnStatus.NOT_LEARNED
    last_learned_at: Optional[str] = None
    memory_strength: float = 0.0
    error_rate: float = 0.0


@dataclass
class SmartReviewItem:
    id: int
    user_id: str
    course_id: str
    module_id: str
    item_type: ReviewItemType
    flashcard_id: Optional[str] = None
    learning_activity_id: Optional[str] = None
    times_served: int = 0
    last_difficulty: Optional[ReviewDifficulty] = None
    probability_weight: float = 1.0
    last_served_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "SmartReviewItem":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            course_id=row["course_id"],
            module_id=row["module_id"],
            item_type=ReviewItemType(row["item_type"]),
            flashcard_id=row["flashcard_id"],
            learning_activity_id=row["learning_activity_id"],
            times_served=row["times_served"],
            last_difficulty=ReviewDifficulty(row["last_difficulty"]) if row["last_difficulty"] else None,
            probability_weight=row["probability_weight"],
            last_served_at=row["last_served_at"],
        )


@dataclass
class SmartReviewProgress:
    user_id: str
    course_id: str
    total_items_reviewed: int = 0
    last_item_id: Optional[int] = None
