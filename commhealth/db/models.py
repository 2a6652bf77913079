# models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Tuple, Union

from commhealth.app.errors import InvalidAnswer, InvalidQuestionConfig, ResponseAlreadyCompleted


QuestionType = Literal["scale", "open"]

SCALE_MIN = 1
SCALE_MAX = 4

DEFAULT_SCALE_OPTIONS: Tuple[Dict[str, Any], ...] = (
    {"label": "Strongly disagree", "value": 1},
    {"label": "Disagree", "value": 2},
    {"label": "Agree", "value": 3},
    {"label": "Strongly agree", "value": 4},
)


@dataclass(frozen=True)
class Question:
    question_id: str
    section_key: str
    section_name: str
    question_text: str
    question_type: QuestionType = "scale"
    weight: float = 1.0
    options: Tuple[Dict[str, Any], ...] = ()
    question_number: int = 0
    sort_order: int = 0
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.question_type not in ("scale", "open"):
            raise InvalidQuestionConfig(f"{self.question_id}: unknown question type {self.question_type!r}")
        if isinstance(self.weight, bool) or not isinstance(self.weight, (int, float)) or self.weight <= 0:
            raise InvalidQuestionConfig(f"{self.question_id}: weight must be a positive number, got {self.weight!r}")

        # Frozen dataclass: normalize through object.__setattr__; options are always a tuple.
        object.__setattr__(self, "options", tuple(self.options or ()))
        if self.question_type == "scale":
            if not self.options:
                object.__setattr__(self, "options", DEFAULT_SCALE_OPTIONS)
            for opt in self.options:
                value = opt.get("value")
                if isinstance(value, bool) or not isinstance(value, int) or not SCALE_MIN <= value <= SCALE_MAX:
                    raise InvalidQuestionConfig(
                        f"{self.question_id}: option values must be integers {SCALE_MIN}-{SCALE_MAX}, got {value!r}"
                    )

    @property
    def is_scale(self) -> bool:
        return self.question_type == "scale"

    @property
    def option_values(self) -> Tuple[int, ...]:
        return tuple(int(o["value"]) for o in self.options)


@dataclass(frozen=True)
class Section:
    key: str
    name: str
    questions: Tuple[Question, ...] = ()

    @property
    def scale_questions(self) -> Tuple[Question, ...]:
        return tuple(q for q in self.questions if q.is_scale)


def group_into_sections(questions: Iterable[Question], active_only: bool = True) -> List[Section]:
    # Sections appear in the order of their first question (by sort_order).
    ordered = sorted(
        (q for q in questions if q.is_active or not active_only),
        key=lambda q: (q.sort_order, q.question_number),
    )
    names: Dict[str, str] = {}
    grouped: Dict[str, List[Question]] = {}
    for q in ordered:
        if q.section_key not in grouped:
            grouped[q.section_key] = []
            names[q.section_key] = q.section_name
        grouped[q.section_key].append(q)

    return [Section(key=k, name=names[k], questions=tuple(qs)) for k, qs in grouped.items()]


@dataclass(frozen=True)
class Respondent:
    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    department: Optional[str] = None
    role: Optional[str] = None
    company_size: Optional[str] = None


@dataclass(frozen=True)
class SectionScore:
    score: float
    max: float
    percentage: int

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "max": self.max, "percentage": self.percentage}


# Stored section score: a bare 1-4 mean (older rows) or {score, max, percentage}.
StoredScore = Union[int, float, Mapping[str, Any], None]


@dataclass
class ResponseDraft:
    """
    An in-progress response.

    Answers may be partial while the respondent works through the survey;
    once `completed_at` is set the draft is frozen and any further
    `record_answer` call fails.
    """

    response_id: str
    assessment_id: str
    respondent: Respondent = field(default_factory=Respondent)
    answers: Dict[str, int] = field(default_factory=dict)
    open_responses: Dict[str, str] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def record_answer(self, question: Question, value: Any) -> None:
        if self.is_completed:
            raise ResponseAlreadyCompleted(f"Response {self.response_id} was already submitted.")

        if question.is_scale:
            if isinstance(value, bool) or not isinstance(value, int) or value not in question.option_values:
                raise InvalidAnswer(
                    f"{question.question_id}: expected one of {question.option_values}, got {value!r}"
                )
            self.answers[question.question_id] = value
        else:
            self.open_responses[question.question_id] = "" if value is None else str(value)


@dataclass(frozen=True)
class ResponseRecord:
    # Storage row shape; scores are kept exactly as stored.
    response_id: str
    assessment_id: Optional[str] = None
    respondent_company: Optional[str] = None
    respondent_department: Optional[str] = None
    respondent_role: Optional[str] = None
    company_size: Optional[str] = None
    respondent_name: Optional[str] = None
    respondent_email: Optional[str] = None
    section_scores: Mapping[str, StoredScore] = field(default_factory=dict)
    overall_score: Optional[float] = None
    answers: Mapping[str, int] = field(default_factory=dict)
    open_responses: Mapping[str, str] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None
