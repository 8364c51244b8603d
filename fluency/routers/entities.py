"""
Sub-entity API endpoints
CRUD for options, answers and rows, mounted per module under /api/{module}/{kind-slug}
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from fluency.content import KINDS, EntityKind, ModuleDefinition
from fluency.dependencies import get_entity_service
from fluency.services.entity_service import EntityService


def _add_kind_routes(router: APIRouter, module: ModuleDefinition, kind: EntityKind):
    CreateSchema = kind.create_schema
    UpdateSchema = kind.update_schema
    path = f"/{kind.slug}"

    @router.post(
        path,
        response_model=kind.response_schema,
        status_code=status.HTTP_201_CREATED,
        name=f"create_{module.name}_{kind.name}",
    )
    def create_entity(payload: CreateSchema, service: EntityService = Depends(get_entity_service)):
        return service.create(module, kind, payload)

    @router.get(
        path + "/{entity_id}",
        response_model=kind.response_schema,
        name=f"get_{module.name}_{kind.name}",
    )
    def get_entity(entity_id: UUID, service: EntityService = Depends(get_entity_service)):
        return service.get(module, kind, entity_id)

    @router.put(
        path + "/{entity_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        name=f"update_{module.name}_{kind.name}",
    )
    def update_entity(
        entity_id: UUID,
        update: UpdateSchema,
        service: EntityService = Depends(get_entity_service),
    ):
        service.update(module, kind, entity_id, update.root)
        return None

    @router.delete(
        path + "/{entity_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        name=f"delete_{module.name}_{kind.name}",
    )
    def delete_entity(entity_id: UUID, service: EntityService = Depends(get_entity_service)):
        service.delete(module, kind, entity_id)
        return None


def build_entity_router(module: ModuleDefinition) -> APIRouter:
    """One set of CRUD routes for every kind the module's question types use"""
    router = APIRouter(prefix=f"/api/{module.name}", tags=[module.name])
    for name in module.kinds:
        _add_kind_routes(router, module, KINDS[name])
    return router
