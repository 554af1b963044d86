"""
Tests for VeriFlow template pack loading

Validates:
- Bundled packs load and convert to domain models
- Malformed YAML fails
- Missing and unknown keys fail
- Schema version mismatch fails
- Reference integrity (duplicates, dynamic-count rules, reserved IDs)
"""
import pytest
import yaml

from veriflow.exceptions import TemplateLoadError, TemplateValidationError
from veriflow.models import (
    ConditionalOperator,
    LegacyStringConditional,
    OperatorConditional,
    PolicyType,
    QuestionType,
)
from veriflow.packs import (
    SCHEMA_VERSION,
    TemplatePackLoader,
    check_schema_version,
    load_template_pack,
    load_template_pack_from_string,
)

from tests.conftest import TEMPLATES_DIR


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def minimal_pack():
    """Minimal valid pack for testing."""
    return {
        "schema_version": SCHEMA_VERSION,
        "id": "test-pack",
        "name": "Test Pack",
        "policy_type": "home_insurance",
        "categories": [
            {
                "id": "exterior",
                "title": "Exterior",
                "photo_requirements": [
                    {"field_id": "photo_front", "label": "Front"},
                ],
                "questions": [
                    {
                        "id": "q_damage",
                        "text": "Damaged areas?",
                        "type": "number",
                        "conditional": {
                            "operator": ">",
                            "value": 0,
                            "use_dynamic_count": True,
                            "show_fields": [{"field_id": "damage_tpl", "label": "Damage #"}],
                        },
                    }
                ],
            }
        ],
    }


@pytest.fixture
def pack_loader():
    return TemplatePackLoader()


def add_question(pack, question):
    pack["categories"][0]["questions"].append(question)
    return pack


# ============================================================================
# BUNDLED PACKS
# ============================================================================

class TestBundledPacks:
    """The packs shipped in templates/ must load cleanly."""

    def test_home_pack(self):
        template = load_template_pack(TEMPLATES_DIR / "home_insurance.yaml")

        assert template.id == "home-standard"
        assert template.policy_type == PolicyType.HOME_INSURANCE
        assert [c.id for c in template.ordered_categories] == [
            "identity", "exterior", "swimming_pool", "safety",
        ]
        assert template.get_category("identity").is_identity is True

    def test_home_conditionals(self):
        template = load_template_pack(TEMPLATES_DIR / "home_insurance.yaml")

        damage = template.get_category("exterior").get_question("q_damage_count")
        assert isinstance(damage.conditional, OperatorConditional)
        assert damage.conditional.use_dynamic_count is True
        assert damage.type == QuestionType.NUMBER

        pool = template.get_category("swimming_pool").get_question("q_pool")
        assert pool.conditional.operator == ConditionalOperator.EQ
        assert pool.conditional.value == "Yes"

        alarm = template.get_category("safety").get_question("q_alarm_provider")
        assert isinstance(alarm.conditional, LegacyStringConditional)
        assert alarm.conditional.show_fields[0].required is False

    def test_load_directory(self, pack_loader):
        assert pack_loader.load_directory(TEMPLATES_DIR) == 2
        assert pack_loader.list_templates() == ["auto-standard", "home-standard"]
        assert pack_loader.for_policy_type(PolicyType.AUTO_INSURANCE).id == "auto-standard"
        assert pack_loader.for_policy_type(PolicyType.CREDIT_CARD) is None

    def test_missing_directory(self, pack_loader, tmp_path):
        assert pack_loader.load_directory(tmp_path / "nowhere") == 0


# ============================================================================
# PARSING
# ============================================================================

class TestParsing:
    """Tests for file and string loading."""

    def test_minimal_pack(self, pack_loader, minimal_pack):
        template = pack_loader.load_dict(minimal_pack)
        assert template.id == "test-pack"
        assert template.version == "1.0.0"
        assert template.categories[0].photo_requirements[0].required is True

    def test_from_string(self, minimal_pack):
        template = load_template_pack_from_string(yaml.safe_dump(minimal_pack))
        assert template.get_category("exterior") is not None

    def test_malformed_yaml(self, pack_loader, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("id: [unclosed\n")
        with pytest.raises(TemplateLoadError):
            pack_loader.load(path)

    def test_missing_file(self, pack_loader, tmp_path):
        with pytest.raises(TemplateLoadError):
            pack_loader.load(tmp_path / "absent.yaml")

    def test_not_a_mapping(self, pack_loader):
        with pytest.raises(TemplateLoadError):
            pack_loader.load_dict(["not", "a", "pack"])

    def test_directory_skips_bad_packs(self, pack_loader, tmp_path, minimal_pack):
        (tmp_path / "good.yaml").write_text(yaml.safe_dump(minimal_pack))
        (tmp_path / "bad.yaml").write_text("id: [unclosed\n")
        (tmp_path / "notes.txt").write_text("ignored")

        assert pack_loader.load_directory(tmp_path) == 1
        assert pack_loader.list_templates() == ["test-pack"]


# ============================================================================
# SCHEMA VALIDATION
# ============================================================================

class TestSchemaValidation:
    """Tests for pydantic schema failures."""

    def test_missing_required_key(self, pack_loader, minimal_pack):
        del minimal_pack["name"]
        with pytest.raises(TemplateValidationError):
            pack_loader.load_dict(minimal_pack)

    def test_unknown_key(self, pack_loader, minimal_pack):
        minimal_pack["colour"] = "blue"
        with pytest.raises(TemplateValidationError):
            pack_loader.load_dict(minimal_pack)

    def test_unknown_policy_type(self, pack_loader, minimal_pack):
        minimal_pack["policy_type"] = "pet_insurance"
        with pytest.raises(TemplateValidationError):
            pack_loader.load_dict(minimal_pack)

    def test_schema_version_mismatch(self, pack_loader, minimal_pack):
        minimal_pack["schema_version"] = "2.0.0"
        with pytest.raises(TemplateValidationError) as exc_info:
            pack_loader.load_dict(minimal_pack)
        assert exc_info.value.details["pack_version"] == "2.0.0"

    def test_lenient_version(self, minimal_pack):
        minimal_pack["schema_version"] = "2.0.0"
        assert TemplatePackLoader(strict_version=False).load_dict(minimal_pack).id == "test-pack"

    def test_check_schema_version_minor_bump(self):
        assert check_schema_version({"schema_version": "1.4.0"}) is True

    def test_whitespace_in_id(self, pack_loader, minimal_pack):
        minimal_pack["id"] = "test pack"
        with pytest.raises(TemplateValidationError):
            pack_loader.load_dict(minimal_pack)

    def test_select_needs_options(self, pack_loader, minimal_pack):
        add_question(minimal_pack, {"id": "q_sel", "text": "Pick", "type": "single_select"})
        with pytest.raises(TemplateValidationError):
            pack_loader.load_dict(minimal_pack)

    def test_conditional_needs_operator_or_answer(self, pack_loader, minimal_pack):
        add_question(minimal_pack, {
            "id": "q_x", "text": "X?", "conditional": {"show_fields": []},
        })
        with pytest.raises(TemplateValidationError):
            pack_loader.load_dict(minimal_pack)

    def test_short_form_legacy_conditional(self, pack_loader, minimal_pack):
        add_question(minimal_pack, {
            "id": "q_alarm",
            "text": "Alarm?",
            "type": "yes_no",
            "conditional": {
                "if_answer": "Yes",
                "show_fields": [{"field_id": "photo_alarm", "label": "Alarm"}],
            },
        })
        template = pack_loader.load_dict(minimal_pack)
        conditional = template.categories[0].get_question("q_alarm").conditional
        assert isinstance(conditional, LegacyStringConditional)
        assert conditional.if_answer == "Yes"


# ============================================================================
# REFERENCE INTEGRITY
# ============================================================================

class TestReferenceIntegrity:
    """Tests for cross-reference checks after conversion."""

    def test_duplicate_category(self, pack_loader, minimal_pack):
        minimal_pack["categories"].append(dict(minimal_pack["categories"][0]))
        with pytest.raises(TemplateValidationError):
            pack_loader.load_dict(minimal_pack)

    def test_duplicate_photo_field(self, pack_loader, minimal_pack):
        add_question(minimal_pack, {
            "id": "q_front",
            "text": "Retake?",
            "conditional": {
                "operator": "=",
                "value": "Yes",
                "show_fields": [{"field_id": "photo_front", "label": "Front again"}],
            },
        })
        with pytest.raises(TemplateValidationError):
            pack_loader.load_dict(minimal_pack)

    def test_dynamic_needs_greater_than(self, pack_loader, minimal_pack):
        minimal_pack["categories"][0]["questions"][0]["conditional"]["operator"] = "<"
        with pytest.raises(TemplateValidationError):
            pack_loader.load_dict(minimal_pack)

    def test_dynamic_needs_number_question(self, pack_loader, minimal_pack):
        minimal_pack["categories"][0]["questions"][0]["type"] = "text"
        with pytest.raises(TemplateValidationError):
            pack_loader.load_dict(minimal_pack)

    def test_one_dynamic_question_per_category(self, pack_loader, minimal_pack):
        add_question(minimal_pack, {
            "id": "q_more",
            "text": "More damage?",
            "type": "number",
            "conditional": {
                "operator": ">=",
                "value": 1,
                "use_dynamic_count": True,
                "show_fields": [{"field_id": "more_tpl", "label": "More #"}],
            },
        })
        with pytest.raises(TemplateValidationError) as exc_info:
            pack_loader.load_dict(minimal_pack)
        assert "more than one dynamic-count question" in exc_info.value.details["errors"]

    def test_reserved_field_prefix(self, pack_loader, minimal_pack):
        minimal_pack["categories"][0]["photo_requirements"][0]["field_id"] = "dynamic_photo_exterior_1"
        with pytest.raises(TemplateValidationError):
            pack_loader.load_dict(minimal_pack)
