"""Exceptions raised by the planning engine."""


class PlannerError(Exception):
    """Base class for errors the service layer reports back to callers."""


class PlanConfigError(PlannerError):
    """The study-plan configuration cannot produce a plan (e.g. exam date in the past)."""


class SettingsNotFoundError(PlannerError):
    def __init__(self, user_id: str, course_id: str):
        super().__init__("Study plan settings not configured")
        self.user_id = user_id
        self.course_id = course_id


class EntryNotFoundError(PlannerError):
    def __init__(self, entry_id: int):
        super().__init__("Plan entry not found")
        self.entry_id = entry_id


class ReviewItemNotFoundError(PlannerError):
    def __init__(self, item_id: int):
        super().__init__("Review item not found")
        self.item_id = item_id


class ConcurrentRegenerationError(PlannerError):
    """Another regeneration committed first for the same learner and course."""

    def __init__(self, user_id: str, course_id: str, expected: int, found: int):
        super().__init__("The study plan was regenerated concurrently, please retry")
        self.user_id = user_id
        self.course_id = course_id
        self.expected = expected
        self.found = found
