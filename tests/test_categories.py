"""Tests for category assignment and the single main category rule."""

import pytest

from wolofdict import (
    DuplicateEdgeError,
    DuplicateEntityError,
    EntityNotEligibleError,
    EntityNotFoundError,
    ValidationError,
)


def _mains(svc, word_id):
    return [a.category_name for a in svc.get_word_categories(word_id) if a.is_main_category]


class TestCategoryAdmin:

    def test_create_and_list(self, service):
        service.create_category("Lieu")
        service.create_category("Culture", name_wolof="Aada", description="Traditions")
        assert [c.name for c in service.list_categories()] == ["Culture", "Lieu"]
        culture = service.get_category_by_name("Culture")
        assert culture.name_wolof == "Aada"
        assert service.get_category(culture.id) == culture

    def test_duplicate_name(self, service):
        service.create_category("Lieu")
        with pytest.raises(DuplicateEntityError):
            service.create_category(" Lieu ")

    def test_empty_name(self, service):
        with pytest.raises(ValidationError):
            service.create_category("  ")

    def test_not_ledgered(self, service):
        service.create_category("Lieu")
        assert service.get_contributions() == []

    def test_missing(self, service):
        with pytest.raises(EntityNotFoundError):
            service.get_category(42)


class TestAssign:

    def test_first_assignment_forced_main(self, service_with_categories, contributor):
        svc, ngor, culture, *_ = service_with_categories
        assignment = svc.assign_category(ngor.id, culture.id, contributor, is_main=False)
        assert assignment.is_main_category
        assert assignment.category_name == "Culture"

    def test_later_assignment_not_main(self, service_with_categories, contributor):
        svc, ngor, culture, lieu, _ = service_with_categories
        svc.assign_category(ngor.id, culture.id, contributor)
        assignment = svc.assign_category(ngor.id, lieu.id, contributor)
        assert not assignment.is_main_category
        assert _mains(svc, ngor.id) == ["Culture"]

    def test_new_main_flips_old(self, service_with_categories, contributor):
        svc, ngor, culture, lieu, _ = service_with_categories
        svc.assign_category(ngor.id, culture.id, contributor, is_main=True)
        svc.assign_category(ngor.id, lieu.id, contributor, is_main=True)
        by_name = {a.category_name: a for a in svc.get_word_categories(ngor.id)}
        assert by_name["Culture"].is_main_category is False
        assert by_name["Lieu"].is_main_category is True
        assert _mains(svc, ngor.id) == ["Lieu"]

    def test_main_listed_first(self, service_with_categories, contributor):
        svc, ngor, culture, lieu, religion = service_with_categories
        svc.assign_category(ngor.id, culture.id, contributor)
        svc.assign_category(ngor.id, lieu.id, contributor)
        svc.assign_category(ngor.id, religion.id, contributor, is_main=True)
        names = [a.category_name for a in svc.get_word_categories(ngor.id)]
        assert names == ["Religion", "Culture", "Lieu"]

    def test_duplicate_pair(self, service_with_categories, contributor):
        svc, ngor, culture, *_ = service_with_categories
        svc.assign_category(ngor.id, culture.id, contributor)
        with pytest.raises(DuplicateEdgeError):
            svc.assign_category(ngor.id, culture.id, contributor, is_main=True)
        assert _mains(svc, ngor.id) == ["Culture"]

    def test_missing_category(self, service_with_categories, contributor):
        svc, ngor, *_ = service_with_categories
        with pytest.raises(EntityNotFoundError):
            svc.assign_category(ngor.id, 999, contributor)

    def test_missing_word(self, service_with_categories, contributor):
        svc, _, culture, *_ = service_with_categories
        with pytest.raises(EntityNotFoundError):
            svc.assign_category(999, culture.id, contributor)

    def test_deleted_word(self, service_with_categories, contributor):
        svc, ngor, culture, *_ = service_with_categories
        svc.delete_entity("word", ngor.id, contributor)
        with pytest.raises(EntityNotEligibleError):
            svc.assign_category(ngor.id, culture.id, contributor)

    def test_rejected_word_keeps_categories(self, service_with_categories, contributor, moderator):
        svc, ngor, culture, lieu, _ = service_with_categories
        svc.assign_category(ngor.id, culture.id, contributor)
        svc.reject_entity("word", ngor.id, moderator)
        assert _mains(svc, ngor.id) == ["Culture"]
        svc.assign_category(ngor.id, lieu.id, contributor)
        assert len(svc.get_word_categories(ngor.id)) == 2


class TestUnassign:

    def test_removing_main_promotes_earliest(self, service_with_categories, contributor):
        svc, ngor, culture, lieu, religion = service_with_categories
        svc.assign_category(ngor.id, culture.id, contributor)
        svc.assign_category(ngor.id, lieu.id, contributor)
        svc.assign_category(ngor.id, religion.id, contributor)
        svc.unassign_category(ngor.id, culture.id, contributor)
        assert _mains(svc, ngor.id) == ["Lieu"]

    def test_removing_non_main(self, service_with_categories, contributor):
        svc, ngor, culture, lieu, _ = service_with_categories
        svc.assign_category(ngor.id, culture.id, contributor)
        svc.assign_category(ngor.id, lieu.id, contributor)
        svc.unassign_category(ngor.id, lieu.id, contributor)
        assert _mains(svc, ngor.id) == ["Culture"]

    def test_removing_last(self, service_with_categories, contributor):
        svc, ngor, culture, *_ = service_with_categories
        svc.assign_category(ngor.id, culture.id, contributor)
        svc.unassign_category(ngor.id, culture.id, contributor)
        assert svc.get_word_categories(ngor.id) == []

    def test_missing_assignment(self, service_with_categories, contributor):
        svc, ngor, culture, *_ = service_with_categories
        with pytest.raises(EntityNotFoundError):
            svc.unassign_category(ngor.id, culture.id, contributor)


class TestSetMain:

    def test_moves_flag(self, service_with_categories, contributor):
        svc, ngor, culture, lieu, _ = service_with_categories
        svc.assign_category(ngor.id, culture.id, contributor)
        svc.assign_category(ngor.id, lieu.id, contributor)
        assignment = svc.set_main_category(ngor.id, lieu.id, contributor)
        assert assignment.is_main_category
        assert _mains(svc, ngor.id) == ["Lieu"]

    def test_unassigned_category(self, service_with_categories, contributor):
        svc, ngor, culture, lieu, _ = service_with_categories
        svc.assign_category(ngor.id, culture.id, contributor)
        with pytest.raises(EntityNotFoundError):
            svc.set_main_category(ngor.id, lieu.id, contributor)


class TestCategoryLedger:

    def test_each_operation_appends_one_word_contribution(self, service_with_categories, contributor):
        svc, ngor, culture, lieu, _ = service_with_categories
        start = len(svc.get_history("word", ngor.id))

        svc.assign_category(ngor.id, culture.id, contributor)
        svc.assign_category(ngor.id, lieu.id, contributor, is_main=True)
        svc.unassign_category(ngor.id, lieu.id, contributor)

        history = svc.get_history("word", ngor.id)[start:]
        assert [r.action for r in history] == ["create", "create", "delete"]

        flip = history[1]
        before = {c["category_id"]: c["is_main_category"] for c in flip.previous_value["categories"]}
        after = {c["category_id"]: c["is_main_category"] for c in flip.new_value["categories"]}
        assert before == {culture.id: True}
        assert after == {culture.id: False, lieu.id: True}

        promoted = history[2].new_value["categories"]
        assert promoted == [
            {**promoted[0], "category_id": culture.id, "is_main_category": True}
        ]
