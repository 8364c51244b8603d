"""
Question API endpoints
Root question CRUD, batch reads and search, mounted once per module under /api/{module}/questions
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from fluency.content import ModuleDefinition
from fluency.database import schemas
from fluency.dependencies import get_question_service
from fluency.services.question_service import QuestionService


def build_question_router(module: ModuleDefinition) -> APIRouter:
    router = APIRouter(prefix=f"/api/{module.name}/questions", tags=[module.name])
    CreateSchema = module.create_schema

    @router.post(
        "",
        response_model=schemas.QuestionResponse,
        response_model_exclude_none=True,
        status_code=status.HTTP_201_CREATED,
    )
    def create_question(payload: CreateSchema, service: QuestionService = Depends(get_question_service)):
        """
        Create a root question (no sub-entities yet)
        The new question is synchronized to cache and search before the response
        """
        return service.create(module, payload)

    # Static paths are registered before /{question_id}

    @router.get("/search")
    def search_questions(
        filters: Annotated[schemas.QuestionSearchFilters, Query()],
        service: QuestionService = Depends(get_question_service),
    ):
        """
        Paginated search over the module's index
        Filters: type, topic (comma list), instruction, title, passages, transcript,
        image_urls, max_time ("min-max"), metadata, status; query ranks by similarity
        """
        return {"success": True, "data": service.search(module, filters)}

    @router.post("/updates")
    def get_new_updates(
        request: schemas.GetNewUpdatesRequest,
        service: QuestionService = Depends(get_question_service),
    ):
        """Return only the questions whose cached version no longer matches the caller's"""
        return {"success": True, "data": service.get_new_updates(module, request.questions)}

    @router.post("/list")
    def get_questions_by_ids(
        request: schemas.GetByIdsRequest,
        service: QuestionService = Depends(get_question_service),
    ):
        return {"success": True, "data": service.get_by_ids(module, request.question_ids)}

    @router.delete("/all")
    def delete_all_questions(service: QuestionService = Depends(get_question_service)):
        """Wipe the module: rows, cached details and search collection"""
        deleted = service.delete_all(module)
        return {"success": True, "data": {"deleted": deleted}}

    @router.get("/{question_id}")
    def get_question_detail(question_id: UUID, service: QuestionService = Depends(get_question_service)):
        """Full question detail with the sub-entities of its type"""
        return service.get_detail(module, question_id)

    @router.put("/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
    def update_question_field(
        question_id: UUID,
        update: schemas.QuestionFieldUpdateRequest,
        service: QuestionService = Depends(get_question_service),
    ):
        """
        Update one field: {"field": "...", "value": ...}
        Bumps the version and resynchronizes cache and search
        """
        service.update_field(module, question_id, update.root)
        return None

    @router.delete("/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_question(question_id: UUID, service: QuestionService = Depends(get_question_service)):
        service.delete(module, question_id)
        return None

    return router
