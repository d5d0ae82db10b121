"""
Tests for the rule-driven entity validator.
"""
import re

import pytest

from deliverable_tracker.domain.entities import Deliverable, ValidationResult, ValidationRule
from deliverable_tracker.domain.services import EntityValidator, check_rule, get_rules
from deliverable_tracker.domain.services.validation_rules import (
    DELIVERABLE_VALIDATION_RULES,
    VARIATION_DELIVERABLE_VALIDATION_RULES,
)


def complete_row(**overrides):
    row = {
        'guid': 'a1',
        'area_number': '01',
        'discipline': 'EL',
        'document_type': 'DRG',
        'deliverable_type_id': 'Deliverable',
        'document_title': 'Single line diagram',
        'budget_hours': 10,
        'variation_hours': 0,
    }
    row.update(overrides)
    return row


class TestCheckRule:
    """Tests for single rule evaluation order."""

    def test_required_missing(self):
        rule = ValidationRule(field='name', required=True)
        assert check_rule(rule, None) == "name is required"
        assert check_rule(rule, '') == "name is required"

    def test_optional_empty_passes(self):
        rule = ValidationRule(field='name', max_length=3, pattern=r'^\d+$')
        assert check_rule(rule, None) is None
        assert check_rule(rule, '') is None

    def test_zero_is_not_empty(self):
        rule = ValidationRule(field='hours', required=True, min=0)
        assert check_rule(rule, 0) is None

    def test_pattern_string_and_compiled(self):
        assert check_rule(ValidationRule(field='code', pattern=r'^[A-Z]{2}$'), 'el') == "code format is invalid"
        compiled = ValidationRule(field='code', pattern=re.compile(r'^[A-Z]{2}$'))
        assert check_rule(compiled, 'EL') is None

    def test_length_bounds(self):
        rule = ValidationRule(field='title', max_length=5, min_length=2)
        assert check_rule(rule, 'abcdef') == "title must be at most 5 characters"
        assert check_rule(rule, 'a') == "title must be at least 2 characters"
        assert check_rule(rule, 'abc') is None

    def test_numeric_bounds(self):
        rule = ValidationRule(field='hours', min=0, max=100)
        assert check_rule(rule, -1) == "hours must be at least 0"
        assert check_rule(rule, '101') == "hours must be at most 100"
        assert check_rule(rule, 50) is None

    def test_numeric_bounds_skip_non_numbers(self):
        rule = ValidationRule(field='hours', min=0)
        assert check_rule(rule, 'lots') is None

    def test_error_text_overrides_generated_message(self):
        rule = ValidationRule(field='area_number', pattern=r'^\d\d$', error_text='Two digits please')
        assert check_rule(rule, '1') == 'Two digits please'


class TestValidateEntity:
    """Tests for full-entity validation."""

    def test_complete_row_is_valid(self):
        validator = EntityValidator(DELIVERABLE_VALIDATION_RULES)
        result = validator.validate_entity(complete_row())
        assert result.is_valid
        assert result.errors == {}
        assert result.field is None

    def test_collects_errors_per_field(self):
        validator = EntityValidator(DELIVERABLE_VALIDATION_RULES)
        result = validator.validate_entity(complete_row(area_number='1', document_title=None))
        assert not result.is_valid
        assert set(result.errors) == {'area_number', 'document_title'}
        assert result.field == 'area_number'
        assert result.error_text == 'Area Number must be exactly 2 digits (00-99)'

    def test_first_failing_rule_wins_per_field(self):
        rules = [
            ValidationRule(field='code', required=True, error_text='first'),
            ValidationRule(field='code', required=True, error_text='second'),
        ]
        result = EntityValidator(rules).validate_entity({})
        assert result.errors == {'code': 'first'}

    def test_accepts_entity_objects(self):
        validator = EntityValidator(DELIVERABLE_VALIDATION_RULES)
        deliverable = Deliverable.from_dict(complete_row())
        assert validator.validate_entity(deliverable).is_valid

    def test_rejects_unsupported_types(self):
        with pytest.raises(TypeError):
            EntityValidator([]).validate_entity(42)

    def test_custom_validator_runs_first(self):
        calls = []

        def no_drafts(data):
            calls.append(data)
            if data.get('document_title', '').startswith('DRAFT'):
                return ValidationResult.failure('document_title', 'Drafts cannot be saved')
            return ValidationResult.ok()

        validator = EntityValidator(DELIVERABLE_VALIDATION_RULES, custom_validator=no_drafts)
        result = validator.validate_entity(complete_row(document_title='DRAFT layout', area_number='x'))

        assert result.errors == {'document_title': 'Drafts cannot be saved'}
        assert len(calls) == 1


class TestValidateRowUpdate:
    """Tests for partial validation of cell edits."""

    def test_partial_validation_isolates_edited_field(self):
        validator = EntityValidator(VARIATION_DELIVERABLE_VALIDATION_RULES)
        row = complete_row(document_title=None)

        partial = validator.validate_row_update(row, {'variation_hours': 40}, changed_fields={'variation_hours'})
        full = validator.validate_entity({**row, 'variation_hours': 40})

        assert partial.is_valid
        assert not full.is_valid
        assert 'document_title' in full.errors

    def test_partial_validation_reports_edited_field(self):
        validator = EntityValidator(VARIATION_DELIVERABLE_VALIDATION_RULES)
        result = validator.validate_row_update(
            complete_row(document_title=None),
            {'variation_hours': -5},
            changed_fields={'variation_hours'},
        )
        assert not result.is_valid
        assert result.errors == {'variation_hours': 'Variation Hours must be zero or more'}

    def test_small_delta_treated_as_cell_edit(self):
        validator = EntityValidator(VARIATION_DELIVERABLE_VALIDATION_RULES)
        result = validator.validate_row_update(complete_row(document_title=None), {'variation_hours': 12})
        assert result.is_valid

    def test_threshold_is_configurable(self):
        validator = EntityValidator(VARIATION_DELIVERABLE_VALIDATION_RULES, cell_edit_key_threshold=1)
        result = validator.validate_row_update(complete_row(document_title=None), {'variation_hours': 12})
        assert not result.is_valid
        assert 'document_title' in result.errors

    def test_insert_without_baseline_is_full_validation(self):
        validator = EntityValidator(DELIVERABLE_VALIDATION_RULES)
        result = validator.validate_row_update(None, {'area_number': '01'})
        assert not result.is_valid
        assert 'document_title' in result.errors

    def test_new_value_overrides_baseline(self):
        validator = EntityValidator(DELIVERABLE_VALIDATION_RULES)
        result = validator.validate_row_update(complete_row(), {'area_number': '7'}, changed_fields=['area_number'])
        assert result.field == 'area_number'


class TestFirstError:
    """Tests for the legacy single-error form."""

    def test_stops_at_first_rule_in_order(self):
        validator = EntityValidator(DELIVERABLE_VALIDATION_RULES)
        result = validator.first_error({'area_number': 'x'}, complete_row(discipline=None))
        assert result.errors == {'area_number': 'Area Number must be exactly 2 digits (00-99)'}

    def test_falls_back_to_old_data(self):
        validator = EntityValidator(DELIVERABLE_VALIDATION_RULES)
        assert validator.first_error({}, complete_row()).is_valid


class TestRuleSets:
    """Tests for the default rule set registry."""

    def test_get_rules_returns_copy(self):
        rules = get_rules('variation_deliverable')
        rules.clear()
        assert get_rules('variation_deliverable')

    def test_unknown_kind(self):
        with pytest.raises(KeyError):
            get_rules('invoice')

    def test_discipline_code(self):
        validator = EntityValidator(get_rules('discipline'))
        assert validator.validate_entity({'code': 'EL'}).is_valid
        assert not validator.validate_entity({'code': 'el'}).is_valid
