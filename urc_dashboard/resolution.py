"""
Resolution states shown by the dashboard.

Exactly one of these describes the page at any time. Each variant only
carries its own payload, so e.g. "loading with an error" can't be expressed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Union

from .drivers import DriverRecord


class ResolutionStatus(Enum):
    """Tag of the active resolution state."""
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"
    NO_QUERY = "no_query"
    NOT_FOUND = "not_found"
    FOUND = "found"


@dataclass(frozen=True)
class Idle:
    """No division selected."""
    status: ClassVar[ResolutionStatus] = ResolutionStatus.IDLE

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value}


@dataclass(frozen=True)
class Loading:
    """Driver list fetch in flight."""
    status: ClassVar[ResolutionStatus] = ResolutionStatus.LOADING

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value}


@dataclass(frozen=True)
class Error:
    """Driver list could not be loaded."""
    message: str
    status: ClassVar[ResolutionStatus] = ResolutionStatus.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "message": self.message}


@dataclass(frozen=True)
class NoQuery:
    """Division loaded, no car number entered."""
    status: ClassVar[ResolutionStatus] = ResolutionStatus.NO_QUERY

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value}


@dataclass(frozen=True)
class NotFound:
    """No driver in the division runs this car number."""
    query: str
    status: ClassVar[ResolutionStatus] = ResolutionStatus.NOT_FOUND

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "query": self.query}


@dataclass(frozen=True)
class Found:
    """Driver matched. Stats already carry the fallback text if empty."""
    driver: DriverRecord
    status: ClassVar[ResolutionStatus] = ResolutionStatus.FOUND

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "driver": self.driver.to_dict()}


ResolutionState = Union[Idle, Loading, Error, NoQuery, NotFound, Found]
