"""Candidate records as delivered by the candidate-changed event, and the
display snapshot that travels with indexing jobs and search results."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CandidateSnapshot:
    """Display and filter fields copied into the index for one candidate."""

    candidate_id: str
    first_name: str = ""
    last_name: str = ""
    full_name: str = ""
    candidate_code: Optional[str] = None
    current_title: Optional[str] = None
    requisition_name: Optional[str] = None
    current_status: str = "New"
    total_years_experience: Optional[int] = None
    needs_sponsorship: bool = False
    is_authorized_to_work: bool = False

    @property
    def sort_key(self) -> tuple:
        """Deterministic tie-break: last name, first name, then id."""
        return (self.last_name.lower(), self.first_name.lower(), self.candidate_id)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CandidateSnapshot":
        return cls(
            candidate_id=str(data["candidate_id"]),
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            full_name=data.get("full_name") or "",
            candidate_code=data.get("candidate_code"),
            current_title=data.get("current_title"),
            requisition_name=data.get("requisition_name"),
            current_status=data.get("current_status") or "New",
            total_years_experience=data.get("total_years_experience"),
            needs_sponsorship=bool(data.get("needs_sponsorship", False)),
            is_authorized_to_work=bool(data.get("is_authorized_to_work", False)),
        )


@dataclass
class CandidateRecord:
    """Full candidate record carried by a candidate-changed event.

    The record is owned by the candidate CRUD system; the indexing pipeline
    only reads it. ``updated_at`` identifies the snapshot version.
    """

    candidate_id: str
    updated_at: datetime
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    address: Optional[str] = None
    candidate_code: Optional[str] = None
    current_title: Optional[str] = None
    requisition_name: Optional[str] = None
    current_status: str = "New"
    total_years_experience: Optional[int] = None
    needs_sponsorship: bool = False
    is_authorized_to_work: bool = False
    is_active: bool = True
    summary: Optional[str] = None
    resume_text: Optional[str] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part).strip()

    @property
    def indexable_text(self) -> str:
        """Profile and resume text that feeds skills, full-text and embedding."""
        parts = [self.current_title, self.summary, self.resume_text]
        return "\n\n".join(part.strip() for part in parts if part and part.strip())

    def snapshot(self) -> CandidateSnapshot:
        return CandidateSnapshot(
            candidate_id=self.candidate_id,
            first_name=self.first_name,
            last_name=self.last_name,
            full_name=self.full_name,
            candidate_code=self.candidate_code,
            current_title=self.current_title,
            requisition_name=self.requisition_name,
            current_status=self.current_status,
            total_years_experience=self.total_years_experience,
            needs_sponsorship=self.needs_sponsorship,
            is_authorized_to_work=self.is_authorized_to_work,
        )


__all__ = ["CandidateSnapshot", "CandidateRecord"]
