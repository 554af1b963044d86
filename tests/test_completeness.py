"""
Tests for VeriFlow Completeness Checker

Tests cover:
- Static photo and required question checks
- Conditional photo requirements (static and dynamic)
- Missing-item messages and ordering
- Orphaned evidence after an answer changes
- Form-level report and navigation gating
"""
import pytest

from veriflow.engine.completeness import (
    CompletenessChecker,
    active_photo_fields,
    check_form,
    is_complete,
    missing_requirements,
    orphaned_evidence,
    prune_orphaned,
)
from veriflow.models import CategoryData

from tests.conftest import (
    make_category,
    make_category_data,
    make_damage_category,
    make_draft,
    make_legacy_conditional,
    make_photo,
    make_pool_category,
    make_question,
    make_template,
)


@pytest.fixture
def checker():
    return CompletenessChecker()


# =============================================================================
# Static Requirements
# =============================================================================

class TestStaticRequirements:
    """Tests for photo requirements and required questions."""

    def test_empty_category_is_complete(self):
        category = make_category("notes")
        assert is_complete(category, None) is True

    def test_missing_required_photo(self):
        category = make_category("identity", photos=[make_photo("photo_id", "ID Card")])
        assert missing_requirements(category, None) == ["Photo: ID Card"]

    def test_optional_photo_not_required(self):
        category = make_category("extras", photos=[make_photo("photo_x", "Extra", required=False)])
        assert is_complete(category, None) is True

    def test_missing_required_question(self):
        category = make_category(
            "details", questions=[make_question("q1", text="Year built?", required=True)]
        )
        assert missing_requirements(category, None) == ["Question: Year built?"]

    @pytest.mark.parametrize("value", ["", "   ", []])
    def test_blank_answers_count_as_missing(self, value):
        category = make_category("details", questions=[make_question("q1", required=True)])
        data = make_category_data("details", answers={"q1": value})
        assert is_complete(category, data) is False

    def test_zero_is_an_answer(self):
        category = make_category("details", questions=[make_question("q1", required=True)])
        data = make_category_data("details", answers={"q1": 0})
        assert is_complete(category, data) is True

    def test_photos_listed_before_questions(self):
        category = make_category(
            "mixed",
            photos=[make_photo("p1", "First Photo")],
            questions=[make_question("q1", text="First question", required=True)],
        )
        assert missing_requirements(category, None) == [
            "Photo: First Photo",
            "Question: First question",
        ]


# =============================================================================
# Conditional Requirements
# =============================================================================

class TestConditionalRequirements:
    """Tests for photos revealed by answers."""

    def test_pool_no_is_complete(self):
        category = make_pool_category()
        data = make_category_data("swimming_pool", answers={"q_pool": "No"})
        assert is_complete(category, data) is True

    def test_pool_yes_requires_photo(self):
        category = make_pool_category()
        data = make_category_data("swimming_pool", answers={"q_pool": "Yes"})
        assert missing_requirements(category, data) == [
            "Photo: Pool Photo (required based on your answer)"
        ]

    def test_pool_yes_with_photo_is_complete(self):
        category = make_pool_category()
        data = make_category_data("swimming_pool", answers={"q_pool": "Yes"}, photos=["photo_pool"])
        assert is_complete(category, data) is True

    def test_optional_conditional_photo_not_required(self):
        category = make_category(
            "safety",
            questions=[
                make_question(
                    "q_alarm",
                    conditional=make_legacy_conditional(
                        "Yes", [make_photo("photo_panel", "Alarm panel", required=False)]
                    ),
                )
            ],
        )
        data = make_category_data("safety", answers={"q_alarm": "Yes"})
        assert is_complete(category, data) is True
        assert [f.field_id for f in active_photo_fields(category, data)] == ["photo_panel"]

    def test_damage_count_requires_each_slot(self):
        category = make_damage_category()
        data = make_category_data(
            "damage",
            answers={"q_damage_count": "3"},
            photos=["dynamic_photo_damage_1", "dynamic_photo_damage_2"],
        )
        assert missing_requirements(category, data) == [
            "Photo: Damage Photo 3 (required based on your answer)"
        ]

    def test_damage_count_zero_is_complete(self):
        category = make_damage_category()
        data = make_category_data("damage", answers={"q_damage_count": 0})
        assert is_complete(category, data) is True

    def test_dynamic_slots_required_even_if_template_optional(self):
        category = make_damage_category()
        category.questions[0].conditional.show_fields[0].required = False
        data = make_category_data("damage", answers={"q_damage_count": 1})
        assert missing_requirements(category, data) == [
            "Photo: Damage Photo 1 (required based on your answer)"
        ]

    def test_dynamic_cap_applies(self):
        category = make_damage_category()
        data = make_category_data("damage", answers={"q_damage_count": 10})
        assert len(missing_requirements(category, data, max_dynamic_photos=4)) == 4


# =============================================================================
# Orphaned Evidence
# =============================================================================

class TestOrphanedEvidence:
    """Tests for evidence the form no longer asks for."""

    def test_pool_photo_orphaned_after_answer_change(self):
        category = make_pool_category()
        data = make_category_data("swimming_pool", answers={"q_pool": "No"}, photos=["photo_pool"])

        assert is_complete(category, data) is True
        assert orphaned_evidence(category, data) == ["photo_pool"]

    def test_shrinking_count_orphans_extra_slots(self):
        category = make_damage_category()
        data = make_category_data(
            "damage",
            answers={"q_damage_count": 1},
            photos=["dynamic_photo_damage_1", "dynamic_photo_damage_2", "dynamic_photo_damage_3"],
        )
        assert orphaned_evidence(category, data) == [
            "dynamic_photo_damage_2",
            "dynamic_photo_damage_3",
        ]

    def test_prune_keeps_answers_and_active_photos(self):
        category = make_pool_category()
        data = make_category_data("swimming_pool", answers={"q_pool": "No"}, photos=["photo_pool"])

        pruned = prune_orphaned(category, data)
        assert pruned.photos == {}
        assert pruned.answer_value("q_pool") == "No"
        # The draft itself keeps the evidence
        assert "photo_pool" in data.photos

    def test_no_data_no_orphans(self):
        assert orphaned_evidence(make_pool_category(), None) == []


# =============================================================================
# Form Report
# =============================================================================

class TestCompletenessReport:
    """Tests for form-level checks."""

    def test_all_missing_items_reported_at_once(self, checker):
        template = make_template()
        draft = make_draft(
            "case-1",
            swimming_pool=make_category_data("swimming_pool", answers={"q_pool": "Yes"}),
        )

        report = checker.check_form(template.snapshot(), draft)
        assert report.is_complete is False
        assert report.all_missing == [
            "Photo: ID Card",
            "Photo: Pool Photo (required based on your answer)",
        ]
        assert report.first_incomplete_index == 0
        assert report.completion_percentage == 0.0

    def test_partial_completion(self, checker):
        template = make_template()
        draft = make_draft(
            "case-1",
            identity=make_category_data("identity", photos=["photo_id"]),
            swimming_pool=make_category_data("swimming_pool", answers={"q_pool": "Yes"}),
        )

        report = checker.check_form(template.snapshot(), draft)
        assert report.first_incomplete_index == 1
        assert report.completion_percentage == 50.0

    def test_complete_form(self):
        template = make_template()
        draft = make_draft(
            "case-1",
            identity=make_category_data("identity", photos=["photo_id"]),
            swimming_pool=make_category_data("swimming_pool", answers={"q_pool": "No"}),
        )

        report = check_form(template.snapshot(), draft)
        assert report.is_complete is True
        assert report.first_incomplete_index is None
        assert report.to_dict()["completion_percentage"] == 100.0

    def test_empty_form_is_complete(self, checker):
        report = checker.check_form([], make_draft("case-1"))
        assert report.is_complete is True
        assert report.completion_percentage == 100.0

    def test_can_advance(self, checker):
        categories = make_template().snapshot()
        draft = make_draft("case-1", identity=make_category_data("identity", photos=["photo_id"]))

        assert checker.can_advance(categories, draft, 0) is True
        assert checker.can_advance(categories, draft, 1) is False
        assert checker.can_advance(categories, draft, 5) is False

    def test_snapshot_drops_orphans_in_category_order(self, checker):
        categories = make_template().snapshot()
        draft = make_draft(
            "case-1",
            swimming_pool=make_category_data(
                "swimming_pool", answers={"q_pool": "No"}, photos=["photo_pool"]
            ),
            identity=make_category_data("identity", photos=["photo_id"]),
        )

        snapshot = checker.snapshot_categories(categories, draft)
        assert [c.category_id for c in snapshot] == ["identity", "swimming_pool"]
        assert snapshot[1].photos == {}
        assert isinstance(snapshot[0], CategoryData)
