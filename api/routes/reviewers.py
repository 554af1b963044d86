"""Reviewer pool and team endpoints."""

from fastapi import APIRouter, HTTPException

from api.schemas.requests import ReviewerInput, TeamInput
from veriflow.models import Reviewer, Team

router = APIRouter(tags=["Reviewers"])

# Assignment pool shared with the verification routes
reviewers: dict[str, Reviewer] = {}
teams: dict[str, Team] = {}


def reset():
    reviewers.clear()
    teams.clear()


def _reviewer_dict(r: Reviewer) -> dict:
    return {
        "id": r.id,
        "full_name": r.full_name,
        "active": r.active,
        "specialization": r.specialization.value if r.specialization else None,
        "team_id": r.team_id,
    }


@router.get("/reviewers")
async def list_reviewers():
    return [_reviewer_dict(r) for r in sorted(reviewers.values(), key=lambda r: r.id)]


@router.put("/reviewers/{reviewer_id}")
async def upsert_reviewer(reviewer_id: str, request: ReviewerInput):
    """Add or replace a reviewer in the assignment pool."""
    if request.id != reviewer_id:
        raise HTTPException(status_code=400, detail="Reviewer id does not match path")
    if request.team_id and request.team_id not in teams:
        raise HTTPException(status_code=404, detail=f"Team '{request.team_id}' not found")
    reviewers[reviewer_id] = request.to_model()
    return _reviewer_dict(reviewers[reviewer_id])


@router.get("/teams")
async def list_teams():
    return [
        {"id": t.id, "name": t.name, "policy_types": [p.value for p in t.policy_types]}
        for t in sorted(teams.values(), key=lambda t: t.id)
    ]


@router.put("/teams/{team_id}")
async def upsert_team(team_id: str, request: TeamInput):
    if request.id != team_id:
        raise HTTPException(status_code=400, detail="Team id does not match path")
    teams[team_id] = request.to_model()
    return {"id": team_id, "name": request.name, "policy_types": list(request.policy_types)}
