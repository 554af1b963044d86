"""Request schemas for the API."""

from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from veriflow.models import (
    AssignmentMode,
    CategoryData,
    CustomerContact,
    DraftSession,
    GeoPoint,
    PhotoEvidence,
    PolicyType,
    Reviewer,
    Team,
)


class GeoPointInput(BaseModel):
    """A WGS84 coordinate."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(default=None, ge=0, description="Metres")

    def to_model(self) -> GeoPoint:
        return GeoPoint(latitude=self.latitude, longitude=self.longitude, accuracy=self.accuracy)


class CustomerInput(BaseModel):
    """Who receives the verification link."""
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=7)
    email: Optional[str] = None
    address: Optional[str] = None

    def to_model(self) -> CustomerContact:
        return CustomerContact(
            name=self.name, phone=self.phone, email=self.email, address=self.address
        )


class CreateVerificationRequest(BaseModel):
    """Request to raise a verification case."""
    template_id: str = Field(..., description="Template pack ID, e.g., 'home-standard'")
    policy_id: str = Field(..., description="Policy the verification is raised against")
    customer: CustomerInput
    assignment_mode: Literal["auto", "team", "reviewer"] = "auto"
    reviewer_id: Optional[str] = None
    team_id: Optional[str] = None
    property_location: Optional[GeoPointInput] = None
    link_expiry_hours: Optional[int] = Field(default=None, gt=0, le=24 * 30)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "template_id": "home-standard",
                    "policy_id": "POL-HOME-0001",
                    "customer": {"name": "Asha Rao", "phone": "+919876543210"},
                    "assignment_mode": "auto",
                    "property_location": {"latitude": 19.076, "longitude": 72.8777},
                }
            ]
        }
    }

    @property
    def mode(self) -> AssignmentMode:
        return AssignmentMode(self.assignment_mode)


class PhotoEvidenceInput(BaseModel):
    """A captured photo; the URL points at external storage."""
    field_id: str
    url: str
    gps: Optional[GeoPointInput] = None
    captured_at: Optional[datetime] = None

    def to_model(self) -> PhotoEvidence:
        return PhotoEvidence(
            field_id=self.field_id,
            url=self.url,
            gps=self.gps.to_model() if self.gps else None,
            captured_at=self.captured_at,
        )


class CategoryDataInput(BaseModel):
    """Answers (by question ID) and photos for one category."""
    answers: dict[str, Union[str, int, float, bool, list[str]]] = Field(default_factory=dict)
    photos: list[PhotoEvidenceInput] = Field(default_factory=list)


class DraftInput(BaseModel):
    """The customer's in-progress form."""
    categories: dict[str, CategoryDataInput] = Field(default_factory=dict)
    current_category_index: int = Field(default=0, ge=0)
    consent_given: bool = False
    consent_timestamp: Optional[datetime] = None

    def to_model(self, case_id: str) -> DraftSession:
        draft = DraftSession(
            case_id=case_id,
            current_category_index=self.current_category_index,
            consent_given=self.consent_given,
            consent_timestamp=self.consent_timestamp,
        )
        for category_id, data in self.categories.items():
            category = CategoryData(category_id=category_id)
            for question_id, value in data.answers.items():
                category.set_answer(question_id, value)
            for photo in data.photos:
                category.add_photo(photo.to_model())
            draft.categories[category_id] = category
        if self.consent_given and draft.consent_timestamp is None:
            draft.give_consent()
        return draft


class ApproveRequest(BaseModel):
    reviewer_id: Optional[str] = None


class RejectRequest(BaseModel):
    """Field-level rejection: category_id -> field_id -> reason."""
    reviewer_id: Optional[str] = None
    feedback: dict[str, dict[str, str]] = Field(..., description="Blank reasons do not flag a field")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "reviewer_id": "rev-1",
                    "feedback": {"exterior": {"photo_roof": "Blurry Image"}},
                }
            ]
        }
    }


class ReassignRequest(BaseModel):
    reviewer_id: Optional[str] = Field(..., description="New reviewer, or null to unassign")
    actor_id: Optional[str] = None


class CancelRequest(BaseModel):
    actor_id: Optional[str] = None


class ReviewerInput(BaseModel):
    """A reviewer in the assignment pool."""
    id: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)
    active: bool = True
    specialization: Optional[Literal["home_insurance", "auto_insurance", "credit_card"]] = None
    team_id: Optional[str] = None
    email: Optional[str] = None

    def to_model(self) -> Reviewer:
        return Reviewer(
            id=self.id,
            full_name=self.full_name,
            active=self.active,
            specialization=PolicyType(self.specialization) if self.specialization else None,
            team_id=self.team_id,
            email=self.email,
        )


class TeamInput(BaseModel):
    """A reviewer team; no policy types means it handles all of them."""
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    policy_types: list[Literal["home_insurance", "auto_insurance", "credit_card"]] = Field(
        default_factory=list
    )

    def to_model(self) -> Team:
        return Team(id=self.id, name=self.name, policy_types=[PolicyType(p) for p in self.policy_types])


def draft_to_dict(draft: DraftSession) -> dict[str, Any]:
    return {
        "case_id": draft.case_id,
        "current_category_index": draft.current_category_index,
        "consent_given": draft.consent_given,
        "saved_at": draft.saved_at.isoformat() if draft.saved_at else None,
        "categories": {cid: data.to_dict() for cid, data in draft.categories.items()},
    }
