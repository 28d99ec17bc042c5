from pydantic import BaseModel
from typing import Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for domain-specific exceptions."""

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class NoActiveMatch(DomainException):
    def __init__(self, court_id: str) -> None:
        super().__init__(
            status_code=404,
            title="No active match",
            detail=f"no match found for court '{court_id}'",
            code="no_active_match",
        )
        self.court_id = court_id


class MatchNotFound(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Match not found",
            detail=f"match '{match_id}' not found",
            code="match_not_found",
        )
        self.match_id = match_id


class ActiveMatchExists(DomainException):
    def __init__(self, court_id: str, match_id: str) -> None:
        super().__init__(
            status_code=409,
            title="Active match exists",
            detail=f"court '{court_id}' already has active match '{match_id}'",
            code="active_match_exists",
        )
        self.match_id = match_id


class VersionConflict(DomainException):
    """The version read before scoring was no longer current at write time."""

    def __init__(self, match_id: str, expected_version: int) -> None:
        super().__init__(
            status_code=409,
            title="Version conflict",
            detail=(
                f"match '{match_id}' changed since version {expected_version} "
                "was read; retry with fresh state"
            ),
            code="version_conflict",
        )
        self.match_id = match_id
        self.expected_version = expected_version


class NothingToUndo(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Nothing to undo",
            detail=f"match '{match_id}' has no recorded points to undo",
            code="nothing_to_undo",
        )
        self.match_id = match_id


class MatchAlreadyTerminal(DomainException):
    def __init__(self, match_id: str, status: str) -> None:
        super().__init__(
            status_code=409,
            title="Match already finished",
            detail=f"match '{match_id}' is {status}",
            code="match_terminal",
        )
        self.match_id = match_id
        self.status = status
