"""
Pytest configuration and fixtures for VeriFlow tests.

Provides helper factories and common fixtures matching actual model definitions.
"""
import itertools
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from veriflow.config import Settings
from veriflow.infra import InMemoryAuditSink
from veriflow.models import (
    Category,
    CategoryData,
    ConditionalOperator,
    CustomerContact,
    DraftSession,
    GeoPoint,
    LegacyStringConditional,
    OperatorConditional,
    PhotoEvidence,
    PhotoRequirement,
    PolicyType,
    Question,
    QuestionType,
    Reviewer,
    Template,
    VerificationCase,
    VerificationStatus,
)
from veriflow.packs import TemplatePackLoader
from veriflow.service import VerificationService


TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


# =============================================================================
# Factory Helpers
# =============================================================================

def make_photo(field_id: str, label: str = None, required: bool = True, capture_gps: bool = False) -> PhotoRequirement:
    """Create a PhotoRequirement."""
    return PhotoRequirement(
        field_id=field_id,
        label=label or field_id.replace("_", " ").title(),
        required=required,
        capture_gps=capture_gps,
    )


def make_operator_conditional(
    operator: str,
    value,
    show_fields: list = None,
    use_dynamic_count: bool = False,
) -> OperatorConditional:
    return OperatorConditional(
        operator=ConditionalOperator(operator),
        value=value,
        show_fields=show_fields or [],
        use_dynamic_count=use_dynamic_count,
    )


def make_legacy_conditional(if_answer: str, show_fields: list = None) -> LegacyStringConditional:
    return LegacyStringConditional(if_answer=if_answer, show_fields=show_fields or [])


def make_question(
    question_id: str,
    text: str = None,
    type: QuestionType = QuestionType.TEXT,
    required: bool = False,
    conditional=None,
    options: list = None,
) -> Question:
    """Create a Question."""
    return Question(
        id=question_id,
        text=text or f"Question {question_id}",
        type=type,
        options=options or [],
        required=required,
        conditional=conditional,
    )


def make_category(
    category_id: str,
    title: str = None,
    photos: list = None,
    questions: list = None,
    order: int = 0,
) -> Category:
    """Create a Category."""
    return Category(
        id=category_id,
        title=title or category_id.replace("_", " ").title(),
        order=order,
        photo_requirements=photos or [],
        questions=questions or [],
    )


def make_pool_category() -> Category:
    """Swimming pool section: a yes/no question revealing one photo."""
    return make_category(
        "swimming_pool",
        title="Swimming Pool",
        questions=[
            make_question(
                "q_pool",
                text="Do you have a pool?",
                type=QuestionType.YES_NO,
                required=True,
                conditional=make_operator_conditional(
                    "=", "Yes", [make_photo("photo_pool", "Pool Photo")]
                ),
            )
        ],
    )


def make_damage_category() -> Category:
    """Damage section: a number question producing one photo slot per damaged area."""
    return make_category(
        "damage",
        title="Damage",
        questions=[
            make_question(
                "q_damage_count",
                text="How many damaged areas?",
                type=QuestionType.NUMBER,
                required=True,
                conditional=make_operator_conditional(
                    ">", 0, [make_photo("damage_template", "Damage Photo #")],
                    use_dynamic_count=True,
                ),
            )
        ],
    )


def make_template(
    template_id: str = "home-test",
    policy_type: PolicyType = PolicyType.HOME_INSURANCE,
    categories: list = None,
) -> Template:
    """Create a Template with an identity section followed by the pool section."""
    if categories is None:
        identity = make_category("identity", photos=[make_photo("photo_id", "ID Card")], order=0)
        identity.is_identity = True
        pool = make_pool_category()
        pool.order = 1
        categories = [identity, pool]
    return Template(
        id=template_id,
        name="Test Template",
        policy_type=policy_type,
        categories=categories,
    )


_case_numbers = itertools.count(1)


def make_case(
    case_id: str = None,
    status: VerificationStatus = VerificationStatus.SUBMITTED,
    rejection_count: int = 0,
    access_token: str = "tok-initial",
    expires_in: timedelta = timedelta(hours=72),
    now: datetime = NOW,
    categories: list = None,
    assigned_reviewer_id: str = None,
    policy_type: PolicyType = PolicyType.HOME_INSURANCE,
) -> VerificationCase:
    """Create a VerificationCase with required fields."""
    n = next(_case_numbers)
    return VerificationCase(
        id=case_id or f"case-{n}",
        reference=f"VER-2025-{n:06d}",
        customer=CustomerContact(name="Asha Rao", phone="+919876543210"),
        policy_id="POL-001",
        policy_type=policy_type,
        access_token=access_token,
        access_token_expiry=now + expires_in,
        categories=categories if categories is not None else make_template().snapshot(),
        status=status,
        created_at=now,
        rejection_count=rejection_count,
        assigned_reviewer_id=assigned_reviewer_id,
    )


def make_reviewer(
    reviewer_id: str,
    active: bool = True,
    specialization: PolicyType = None,
    team_id: str = None,
) -> Reviewer:
    return Reviewer(
        id=reviewer_id,
        full_name=f"Reviewer {reviewer_id}",
        active=active,
        specialization=specialization,
        team_id=team_id,
    )


def make_evidence(field_id: str, gps: GeoPoint = None) -> PhotoEvidence:
    return PhotoEvidence(field_id=field_id, url=f"https://files.example/{field_id}.jpg", gps=gps)


def make_category_data(category_id: str, answers: dict = None, photos: list = None) -> CategoryData:
    """Create CategoryData from plain answers and a list of photo field IDs."""
    data = CategoryData(category_id=category_id)
    for question_id, value in (answers or {}).items():
        data.set_answer(question_id, value)
    for field_id in photos or []:
        data.add_photo(make_evidence(field_id))
    return data


def make_draft(case_id: str = "case-1", consent: bool = True, **categories: CategoryData) -> DraftSession:
    """Create a DraftSession; keyword arguments map category IDs to CategoryData."""
    draft = DraftSession(case_id=case_id, categories=dict(categories))
    if consent:
        draft.give_consent(NOW)
    return draft


def complete_draft(case_id: str, pool_answer: str = "No") -> DraftSession:
    """A draft satisfying the default make_template form."""
    pool_photos = ["photo_pool"] if pool_answer == "Yes" else []
    return make_draft(
        case_id,
        identity=make_category_data("identity", photos=["photo_id"]),
        swimming_pool=make_category_data(
            "swimming_pool", answers={"q_pool": pool_answer}, photos=pool_photos
        ),
    )


class FakeClock:
    """Settable clock for deterministic timestamps."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class SequenceTokens:
    """Token issuer yielding tok-1, tok-2, ..."""

    def __init__(self):
        self._counter = itertools.count(1)

    def issue(self) -> str:
        return f"tok-{next(self._counter)}"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def audit():
    return InMemoryAuditSink()


@pytest.fixture
def service(clock, audit):
    """Service over in-memory stores with a fixed clock and predictable tokens."""
    return VerificationService(
        audit=audit,
        tokens=SequenceTokens(),
        settings=Settings(),
        clock=clock,
    )


@pytest.fixture
def template():
    return make_template()


@pytest.fixture
def loader():
    """Loader with the bundled template packs."""
    loader = TemplatePackLoader()
    loader.load_directory(TEMPLATES_DIR)
    return loader
