"""
Sub-entity service
Create/get/update/delete for every sub-entity kind in the catalog. Each
mutation bumps the owning question's version and resynchronizes it.
"""

import logging
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fluency.content import KINDS, EntityKind, ModuleDefinition
from fluency.database import crud, models
from fluency.errors import AggregateLoadError, InvalidInputError, NotFoundError, format_validation_errors
from fluency.services.updator import QuestionUpdator

log = logging.getLogger(__name__)


class EntityService:
    def __init__(self, db: Session, updator: QuestionUpdator):
        self.db = db
        self.updator = updator

    def create(self, module: ModuleDefinition, kind: EntityKind, payload):
        owner_id = getattr(payload, kind.parent_field)
        question = self._owning_question(module, kind, owner_id)
        self._check_kind_allowed(module, kind, question)

        if kind.single and crud.list_entities(self.db, kind, owner_id):
            raise InvalidInputError(f"{kind.name} already exists for {kind.parent or 'question'} {owner_id}")

        fields = payload.model_dump()
        # siblings are unmarked before the new row is added so autoflush cannot pick it up
        if kind.exclusive_correct and fields.get("is_correct"):
            self._clear_other_correct(kind, owner_id, exclude_id=None)
        entity = crud.create_entity(self.db, kind, fields)

        self._touch_and_sync(question, kind)
        self.db.refresh(entity)
        log.info(f"[{kind.name.upper()}] Created {entity.id} under {module.name} question {question.id}")
        return entity

    def get(self, module: ModuleDefinition, kind: EntityKind, entity_id: UUID):
        entity, _ = self._get_with_question(module, kind, entity_id)
        return entity

    def update(self, module: ModuleDefinition, kind: EntityKind, entity_id: UUID, update):
        """Apply one {field, value} update, re-validating the whole row."""
        entity, question = self._get_with_question(module, kind, entity_id)

        current = {name: getattr(entity, name) for name in kind.create_schema.model_fields}
        current[update.field] = update.value
        try:
            validated = kind.create_schema.model_validate(current)
        except ValidationError as e:
            raise InvalidInputError(format_validation_errors(e.errors()))

        setattr(entity, update.field, getattr(validated, update.field))
        if kind.exclusive_correct and update.field == "is_correct" and entity.is_correct:
            self._clear_other_correct(kind, getattr(entity, kind.parent_field), exclude_id=entity.id)

        self._touch_and_sync(question, kind)
        return entity

    def delete(self, module: ModuleDefinition, kind: EntityKind, entity_id: UUID):
        entity, question = self._get_with_question(module, kind, entity_id)
        self.db.delete(entity)
        self._touch_and_sync(question, kind)
        log.info(f"[{kind.name.upper()}] Deleted {entity_id} from {module.name} question {question.id}")

    # ─── Helpers ───────────────────────────────────────────────────────────────

    def _owning_question(self, module: ModuleDefinition, kind: EntityKind, owner_id: UUID) -> models.Question:
        """Walk up the parent chain (option → choice question → root)."""
        current_kind, current_id = kind, owner_id
        while current_kind.parent is not None:
            parent_kind = KINDS[current_kind.parent]
            parent = crud.get_entity(self.db, parent_kind, current_id)
            if parent is None:
                raise NotFoundError(f"{parent_kind.name} {current_id} not found")
            current_kind, current_id = parent_kind, getattr(parent, parent_kind.parent_field)

        question = crud.get_question(self.db, module.name, current_id)
        if question is None:
            raise NotFoundError(f"{module.name} question {current_id} not found")
        return question

    def _get_with_question(self, module: ModuleDefinition, kind: EntityKind, entity_id: UUID):
        entity = crud.get_entity(self.db, kind, entity_id)
        if entity is None:
            raise NotFoundError(f"{kind.name} {entity_id} not found")
        try:
            question = self._owning_question(module, kind, getattr(entity, kind.parent_field))
        except NotFoundError:
            # row belongs to another module's question
            raise NotFoundError(f"{kind.name} {entity_id} not found")
        return entity, question

    def _check_kind_allowed(self, module: ModuleDefinition, kind: EntityKind, question: models.Question):
        if kind.name not in module.kinds_for(question.type):
            raise InvalidInputError(
                f"{kind.name} cannot be added to a {module.name} {question.type} question"
            )

    def _clear_other_correct(self, kind: EntityKind, owner_id: UUID, exclude_id):
        for sibling in crud.get_other_correct_entities(self.db, kind, owner_id, exclude_id=exclude_id):
            sibling.is_correct = False
            log.info(f"[{kind.name.upper()}] Option {sibling.id} unmarked as correct")

    def _touch_and_sync(self, question: models.Question, kind: EntityKind):
        """Bump the root version, rebuild inside the transaction, commit, publish."""
        question.version += 1
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise InvalidInputError(f"duplicate or conflicting {kind.name}: {e.orig}")
        try:
            projection = self.updator.build(self.db, question)
        except AggregateLoadError:
            self.db.rollback()
            raise
        self.db.commit()
        self.updator.publish(projection)
