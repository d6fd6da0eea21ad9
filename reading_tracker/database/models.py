"""Records stored in the reading tracker database."""
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional


def _row_to_kwargs(cls, row: Mapping[str, Any]) -> Dict[str, Any]:
    """Pick the dataclass fields out of a row; columns missing from an old schema become None."""
    keys = set(row.keys())
    return {f.name: (row[f.name] if f.name in keys else None) for f in fields(cls)}


@dataclass
class Account:
    """User account. password_hash and salt never leave through the session store."""
    username: str
    password_hash: str
    salt: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    account_number: Optional[str] = None
    grade: Optional[str] = None
    semester: Optional[str] = None
    approved: bool = False
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Account":
        kwargs = _row_to_kwargs(cls, row)
        kwargs["approved"] = bool(kwargs["approved"])
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SessionUser:
    """Logged-in user as kept in the session store (no credentials)."""
    username: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    account_number: Optional[str] = None
    grade: Optional[str] = None
    semester: Optional[str] = None
    approved: bool = False

    @classmethod
    def from_account(cls, account: Account) -> "SessionUser":
        return cls(
            username=account.username,
            full_name=account.full_name,
            phone=account.phone,
            account_number=account.account_number,
            grade=account.grade,
            semester=account.semester,
            approved=account.approved,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionUser":
        kwargs = _row_to_kwargs(cls, data)
        kwargs["approved"] = bool(kwargs["approved"])
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReadingSession:
    """Single reading exercise."""
    username: str
    date: str
    lesson_id: Optional[str] = None
    lesson_title: Optional[str] = None
    speed: Optional[float] = None
    errors: Optional[int] = None
    duration: Optional[float] = None
    words_read: Optional[int] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ReadingSession":
        return cls(**_row_to_kwargs(cls, row))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class QuizResult:
    """Result of one lesson quiz."""
    username: str
    date: str
    lesson_id: Optional[str] = None
    lesson_title: Optional[str] = None
    score: Optional[float] = None
    correct_answers: Optional[int] = None
    total_questions: Optional[int] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "QuizResult":
        return cls(**_row_to_kwargs(cls, row))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
