"""Tests for ModerationService create/update/moderate/delete flows."""

import dataclasses

import pytest

from wolofdict import (
    DuplicateEntityError,
    EntityNotEligibleError,
    EntityNotFoundError,
    InvalidTransitionError,
    LedgerError,
    ModerationService,
    ValidationError,
)
from wolofdict import ledger as _ledger
from wolofdict.alphabet import bucket_of


class TestCreateWord:

    def test_create(self, service, contributor):
        word = service.create_word("  Ngor ", contributor, dialect="lebu")
        assert word.term == "Ngor"
        assert word.initial_letter == "NG"
        assert word.validation_status == "pending"
        assert word.created_by == "user-1"
        assert word.revision == 1
        assert word.deleted_at is None
        assert word.is_archaic is False
        assert word.dialect == "lebu"

    @pytest.mark.parametrize("term", ["", "   ", None])
    def test_empty_term(self, service, contributor, term):
        with pytest.raises(ValidationError):
            service.create_word(term, contributor)

    def test_duplicate_term(self, service, contributor):
        service.create_word("Ngor", contributor)
        with pytest.raises(DuplicateEntityError):
            service.create_word("Ngor", contributor)

    def test_invalid_difficulty(self, service, contributor):
        with pytest.raises(ValidationError):
            service.create_word("Ngor", contributor, difficulty="facile")

    def test_create_recorded(self, service, contributor):
        word = service.create_word("Ngor", contributor)
        history = service.get_history("word", word.id)
        assert len(history) == 1
        assert history[0].action == "create"
        assert history[0].previous_value is None
        assert history[0].new_value == dataclasses.asdict(word)
        assert history[0].user_id == "user-1"

    def test_lookup_by_term(self, service, contributor):
        word = service.create_word("Ñaan", contributor)
        assert service.get_word_by_term("Ñaan") == word
        assert service.get_word(word.id) == word
        with pytest.raises(EntityNotFoundError):
            service.get_word_by_term("Xale")


class TestCreateChildren:

    def test_children(self, service_with_words, contributor):
        svc, ngor, *_ = service_with_words
        tr = svc.create_translation(ngor.id, "île de Ngor", contributor, is_primary=True)
        ex = svc.create_example(
            ngor.id, "Dinaa dem Ngor", "J'irai à Ngor", contributor,
            difficulty="débutant",
        )
        cj = svc.create_conjugation(ngor.id, "présent", "1sg", "dama", contributor)
        assert tr.is_primary is True
        assert tr.register == "standard"
        assert ex.text_french == "J'irai à Ngor"
        assert cj.is_regular is True
        assert [t.id for t in svc.children_of(ngor.id, "translation")] == [tr.id]
        assert [e.id for e in svc.children_of(ngor.id, "example")] == [ex.id]
        assert [c.id for c in svc.children_of(ngor.id, "conjugation")] == [cj.id]
        assert svc.get_history("translation", tr.id)[0].action == "create"

    def test_invalid_register(self, service_with_words, contributor):
        svc, ngor, *_ = service_with_words
        with pytest.raises(ValidationError):
            svc.create_translation(ngor.id, "île", contributor, register="argot")

    def test_missing_word(self, service, contributor):
        with pytest.raises(EntityNotFoundError):
            service.create_translation(999, "rien", contributor)

    def test_deleted_word(self, service_with_words, contributor):
        svc, ngor, *_ = service_with_words
        svc.delete_entity("word", ngor.id, contributor)
        with pytest.raises(EntityNotEligibleError):
            svc.create_example(ngor.id, "a", "b", contributor)

    def test_children_of_phrase_rejected(self, service_with_words):
        svc, ngor, *_ = service_with_words
        with pytest.raises(ValidationError):
            svc.children_of(ngor.id, "phrase")


class TestPhrase:

    def test_create_and_validate(self, service, contributor, moderator):
        phrase = service.create_phrase(
            "Na nga def?", "Comment vas-tu ?", contributor, category="salutations",
        )
        assert phrase.difficulty == "débutant"
        validated = service.validate_entity("phrase", phrase.id, moderator)
        assert validated.validation_status == "validated"
        assert [r.action for r in service.get_history("phrase", phrase.id)] == [
            "create", "validate",
        ]

    def test_difficulty_required(self, service, contributor):
        with pytest.raises(ValidationError):
            service.create_phrase("Jërëjëf", "Merci", contributor, difficulty=None)


class TestScenarios:

    def test_create_then_validate(self, service, contributor, moderator):
        word = service.create_word("Ngor", contributor)
        word = service.validate_entity("word", word.id, moderator)
        assert word.initial_letter == "NG"
        assert word.validation_status == "validated"
        assert word.validated_by == "mod-1"
        assert word.validation_date is not None
        assert [r.action for r in service.get_history("word", word.id)] == [
            "create", "validate",
        ]

    def test_term_edit_returns_to_pending(self, service, contributor, moderator):
        word = service.create_word("Ngor", contributor)
        validated = service.validate_entity("word", word.id, moderator)
        edited = service.update_entity("word", word.id, contributor, term="Ngoor")
        assert edited.validation_status == "pending"
        assert edited.initial_letter == "NG"
        # last decision kept as history
        assert edited.validated_by == "mod-1"
        assert edited.validation_date == validated.validation_date

        history = service.get_history("word", word.id)
        assert len(history) == 3
        assert history[-1].action == "update"
        assert history[-1].previous_value == dataclasses.asdict(validated)
        assert history[-1].new_value == dataclasses.asdict(edited)

    def test_editing_twice_stays_pending(self, service, contributor, moderator):
        word = service.create_word("Ngor", contributor)
        service.validate_entity("word", word.id, moderator)
        service.update_entity("word", word.id, contributor, term="Ngoor")
        again = service.update_entity("word", word.id, contributor, term="Ngooor")
        assert again.validation_status == "pending"


class TestUpdate:

    def test_term_change_recomputes_letter(self, service, contributor):
        word = service.create_word("Aada", contributor)
        updated = service.update_entity("word", word.id, contributor, term="ñam")
        assert updated.initial_letter == "Ñ"
        assert updated.initial_letter == bucket_of(updated.term)
        assert updated.revision == 2

    def test_non_content_edit_keeps_validation(self, service, contributor, moderator):
        word = service.create_word("Ngor", contributor)
        service.validate_entity("word", word.id, moderator)
        updated = service.update_entity(
            "word", word.id, contributor, notes="village lébou", is_archaic=True,
        )
        assert updated.validation_status == "validated"
        assert updated.is_archaic is True

    def test_example_text_edit_resets(self, service_with_words, contributor, moderator):
        svc, ngor, *_ = service_with_words
        ex = svc.create_example(ngor.id, "Dem naa Ngor", "Je suis allé à Ngor", contributor)
        svc.validate_entity("example", ex.id, moderator)
        updated = svc.update_entity("example", ex.id, contributor, text_french="Je vais à Ngor")
        assert updated.validation_status == "pending"

    def test_unknown_or_derived_fields(self, service, contributor):
        word = service.create_word("Ngor", contributor)
        with pytest.raises(ValidationError):
            service.update_entity("word", word.id, contributor, initial_letter="X")
        with pytest.raises(ValidationError):
            service.update_entity("word", word.id, contributor, validation_status="validated")
        with pytest.raises(ValidationError):
            service.update_entity("word", word.id, contributor, colour="blue")

    def test_empty_term_rejected(self, service, contributor):
        word = service.create_word("Ngor", contributor)
        with pytest.raises(ValidationError):
            service.update_entity("word", word.id, contributor, term=" ")
        assert service.get_word(word.id).term == "Ngor"

    def test_rename_to_existing_term(self, service_with_words, contributor):
        svc, ngor, aada, _ = service_with_words
        with pytest.raises(DuplicateEntityError):
            svc.update_entity("word", aada.id, contributor, term="Ngor")
        assert len(svc.get_history("word", aada.id)) == 1

    def test_noop_update_writes_nothing(self, service, contributor):
        word = service.create_word("Ngor", contributor)
        same = service.update_entity("word", word.id, contributor, term="Ngor")
        assert same == word
        assert len(service.get_history("word", word.id)) == 1

    def test_missing_entity(self, service, contributor):
        with pytest.raises(EntityNotFoundError):
            service.update_entity("word", 42, contributor, notes="x")

    def test_unknown_entity_type(self, service, contributor):
        with pytest.raises(ValidationError):
            service.get_entity("lemma", 1)


class TestDecisions:

    def test_contributor_cannot_validate(self, service, contributor):
        word = service.create_word("Ngor", contributor)
        with pytest.raises(InvalidTransitionError):
            service.validate_entity("word", word.id, contributor)
        assert service.get_word(word.id).validation_status == "pending"
        assert len(service.get_history("word", word.id)) == 1

    def test_cannot_judge_twice(self, service, contributor, moderator):
        word = service.create_word("Ngor", contributor)
        service.validate_entity("word", word.id, moderator)
        with pytest.raises(InvalidTransitionError):
            service.validate_entity("word", word.id, moderator)
        with pytest.raises(InvalidTransitionError):
            service.reject_entity("word", word.id, moderator)

    def test_rejected_needs_edit_before_validation(self, service, contributor, moderator):
        word = service.create_word("Ngor", contributor)
        service.reject_entity("word", word.id, moderator, comment="orthographe")
        with pytest.raises(InvalidTransitionError):
            service.validate_entity("word", word.id, moderator)
        service.update_entity("word", word.id, contributor, term="Ngoor")
        final = service.validate_entity("word", word.id, moderator)
        assert final.validation_status == "validated"
        actions = [r.action for r in service.get_history("word", word.id)]
        assert actions == ["create", "reject", "update", "validate"]
        assert service.get_history("word", word.id)[1].comment == "orthographe"


class TestDelete:

    def test_soft_delete(self, service, contributor):
        word = service.create_word("Ngor", contributor)
        service.delete_entity("word", word.id, contributor)
        deleted = service.get_word(word.id)
        assert deleted.deleted_at is not None
        last = service.get_history("word", word.id)[-1]
        assert last.action == "delete"
        assert last.new_value is None
        assert last.previous_value == dataclasses.asdict(word)

    def test_deleted_is_frozen(self, service, contributor, moderator):
        word = service.create_word("Ngor", contributor)
        service.delete_entity("word", word.id, contributor)
        with pytest.raises(InvalidTransitionError):
            service.update_entity("word", word.id, contributor, notes="x")
        with pytest.raises(InvalidTransitionError):
            service.validate_entity("word", word.id, moderator)
        with pytest.raises(InvalidTransitionError):
            service.delete_entity("word", word.id, contributor)

    def test_word_delete_cascades_to_children(self, service_with_words, contributor):
        svc, ngor, *_ = service_with_words
        tr = svc.create_translation(ngor.id, "île de Ngor", contributor)
        ex = svc.create_example(ngor.id, "Ngor", "Ngor", contributor)
        cj = svc.create_conjugation(ngor.id, "présent", "1sg", "dama", contributor)
        before = len(svc.get_contributions())

        svc.delete_entity("word", ngor.id, contributor)

        # one contribution for the whole operation
        assert len(svc.get_contributions()) == before + 1
        for entity_type, child in [("translation", tr), ("example", ex), ("conjugation", cj)]:
            assert svc.get_entity(entity_type, child.id).deleted_at is not None
            assert svc.children_of(ngor.id, entity_type) == []
            assert len(svc.children_of(ngor.id, entity_type, include_deleted=True)) == 1

        effects = svc.get_history("word", ngor.id)[-1].side_effects
        assert {"soft_deleted": {"entity_type": "translation", "entity_id": tr.id}} in effects
        assert {"soft_deleted": {"entity_type": "conjugation", "entity_id": cj.id}} in effects

    def test_child_delete_leaves_word(self, service_with_words, contributor):
        svc, ngor, *_ = service_with_words
        tr = svc.create_translation(ngor.id, "île", contributor)
        svc.delete_entity("translation", tr.id, contributor)
        assert svc.get_word(ngor.id).deleted_at is None


class TestLedgerFailure:
    """A mutation whose contribution cannot be written leaves no trace."""

    @pytest.fixture
    def broken_ledger(self, monkeypatch):
        def fail(*args, **kwargs):
            raise LedgerError("ledger unavailable")

        monkeypatch.setattr(_ledger, "record", fail)

    def test_update_rolled_back(self, service_with_words, contributor, request):
        svc, ngor, *_ = service_with_words
        before = len(svc.get_contributions())
        request.getfixturevalue("broken_ledger")

        with pytest.raises(LedgerError):
            svc.update_entity("word", ngor.id, contributor, term="Ngoor")

        word = svc.get_word(ngor.id)
        assert word.term == "Ngor"
        assert word.revision == 1
        assert len(svc.get_contributions()) == before

    def test_word_delete_cascade_rolled_back(
        self, service_with_words, contributor, request
    ):
        svc, ngor, aada, _ = service_with_words
        tr = svc.create_translation(ngor.id, "île de Ngor", contributor)
        svc.link_synonyms(ngor.id, aada.id, contributor)
        before = len(svc.get_contributions())
        request.getfixturevalue("broken_ledger")

        with pytest.raises(LedgerError):
            svc.delete_entity("word", ngor.id, contributor)

        assert svc.get_word(ngor.id).deleted_at is None
        assert svc.get_entity("translation", tr.id).deleted_at is None
        assert [s.synonym_id for s in svc.get_synonyms(ngor.id)] == [aada.id]
        assert len(svc.get_contributions()) == before


class TestRevert:

    def test_revert_to_previous(self, service, contributor):
        word = service.create_word("Ngor", contributor)
        service.update_entity("word", word.id, contributor, term="Ngoor", notes="typo")
        update = service.get_history("word", word.id)[-1]

        reverted = service.revert_entity("word", word.id, update.id, contributor)
        assert reverted.term == "Ngor"
        assert reverted.notes is None
        last = service.get_history("word", word.id)[-1]
        assert last.action == "update"
        assert f"#{update.id}" in last.comment

    def test_revert_to_new_value(self, service, contributor):
        word = service.create_word("Ngor", contributor)
        service.update_entity("word", word.id, contributor, term="Ngoor")
        first_update = service.get_history("word", word.id)[-1]
        service.update_entity("word", word.id, contributor, term="Ngooor")
        reverted = service.revert_entity(
            "word", word.id, first_update.id, contributor, use="new",
        )
        assert reverted.term == "Ngoor"

    def test_revert_other_entity(self, service_with_words, contributor):
        svc, ngor, aada, _ = service_with_words
        create = svc.get_history("word", aada.id)[0]
        with pytest.raises(ValidationError):
            svc.revert_entity("word", ngor.id, create.id, contributor)

    def test_revert_without_snapshot(self, service, contributor):
        word = service.create_word("Ngor", contributor)
        create = service.get_history("word", word.id)[0]
        with pytest.raises(ValidationError):
            service.revert_entity("word", word.id, create.id, contributor)
        with pytest.raises(ValidationError):
            service.revert_entity("word", word.id, create.id, contributor, use="latest")


class TestBrowsing:

    def test_find_words_by_letter(self, service_with_words, contributor):
        svc, ngor, aada, naan = service_with_words
        svc.create_word("Ngelaw", contributor)
        svc.create_word("Nit", contributor)
        assert [w.term for w in svc.find_words(letter="ng")] == ["Ngelaw", "Ngor"]
        assert [w.term for w in svc.find_words(letter="N")] == ["Nit"]
        assert [w.term for w in svc.find_words(letter="ñ")] == ["Ñaan"]

    def test_find_words_by_status(self, service_with_words, moderator):
        svc, ngor, aada, naan = service_with_words
        svc.validate_entity("word", aada.id, moderator)
        assert [w.term for w in svc.find_words(status="validated")] == ["Aada"]
        with pytest.raises(ValidationError):
            svc.find_words(status="approved")

    def test_find_words_excludes_deleted(self, service_with_words, contributor):
        svc, ngor, *_ = service_with_words
        svc.delete_entity("word", ngor.id, contributor)
        assert "Ngor" not in [w.term for w in svc.find_words()]
        assert "Ngor" in [w.term for w in svc.find_words(include_deleted=True)]

    def test_letter_counts(self, service_with_words, contributor):
        svc, *_ = service_with_words
        svc.create_word("Nit", contributor)
        svc.create_word("Ngelaw", contributor)
        counts = svc.letter_counts()
        assert counts == {"A": 1, "N": 1, "NG": 2, "Ñ": 1}
        assert list(counts) == ["A", "N", "NG", "Ñ"]

    def test_moderation_queue(self, service_with_words, contributor, moderator):
        svc, ngor, aada, naan = service_with_words
        svc.validate_entity("word", aada.id, moderator)
        svc.delete_entity("word", naan.id, contributor)
        assert [w.id for w in svc.moderation_queue("word")] == [ngor.id]


class TestContributionQueries:

    def test_filters(self, service_with_words, moderator):
        svc, ngor, *_ = service_with_words
        svc.validate_entity("word", ngor.id, moderator)
        assert len(svc.get_contributions(action="create")) == 3
        assert [r.entity_id for r in svc.get_contributions(user_id="mod-1")] == [ngor.id]
        record = svc.get_contributions(action="validate")[0]
        assert svc.get_contribution(record.id) == record

    def test_missing_contribution(self, service):
        with pytest.raises(EntityNotFoundError):
            service.get_contribution(1)


class TestBatch:

    def test_batch_commits(self, service, contributor):
        with service.batch():
            service.create_word("Ngor", contributor)
            service.create_word("Aada", contributor)
        assert len(service.find_words()) == 2

    def test_batch_rolls_back(self, service, contributor):
        with pytest.raises(DuplicateEntityError):
            with service.batch():
                service.create_word("Ngor", contributor)
                service.create_word("Ngor", contributor)
        assert service.find_words() == []
        assert service.get_contributions() == []

    def test_failed_call_inside_batch_is_isolated(self, service, contributor):
        with service.batch():
            service.create_word("Ngor", contributor)
            with pytest.raises(DuplicateEntityError):
                service.create_word("Ngor", contributor)
            service.create_word("Aada", contributor)
        assert [w.term for w in service.find_words()] == ["Aada", "Ngor"]
        assert len(service.get_contributions()) == 2

    def test_nested_batch(self, service, contributor):
        with service.batch():
            service.create_word("Ngor", contributor)
            with service.batch():
                service.create_word("Aada", contributor)
        assert len(service.find_words()) == 2


class TestPersistence:

    def test_reopen_file_database(self, tmp_path, contributor):
        path = tmp_path / "dict.db"
        with ModerationService(path) as svc:
            word = svc.create_word("Ngor", contributor)
        with ModerationService(path) as svc:
            assert svc.get_word(word.id).term == "Ngor"
            assert len(svc.get_history("word", word.id)) == 1
            assert svc.db_path == str(path)

    def test_validate_is_clean_after_normal_use(self, service_with_words, contributor, moderator):
        svc, ngor, aada, naan = service_with_words
        cat = svc.create_category("Lieu")
        svc.assign_category(ngor.id, cat.id, contributor)
        svc.link_synonyms(ngor.id, aada.id, contributor)
        svc.create_translation(naan.id, "prier", contributor)
        svc.validate_entity("word", ngor.id, moderator)
        svc.delete_entity("word", naan.id, contributor)
        svc.reject_entity("word", aada.id, moderator)
        assert svc.validate() == []
