from typing import List

from fastapi import APIRouter, HTTPException, status

from creature_server.models.schema_models import CreatureTemplateSchema, LevelStatsSchema
from creature_server.services import catalog_db

catalog_router = APIRouter()


class CatalogAPI:
    @staticmethod
    @catalog_router.get("/catalog/templates", response_model=List[CreatureTemplateSchema])
    async def list_templates():
        return await catalog_db.read_templates()

    @staticmethod
    @catalog_router.get("/catalog/templates/{template_key}", response_model=CreatureTemplateSchema)
    async def get_template(template_key: str):
        template = await catalog_db.read_template(template_key)
        if template is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
        return template

    @staticmethod
    @catalog_router.get("/catalog/templates/{template_key}/levels", response_model=List[LevelStatsSchema])
    async def get_template_levels(template_key: str):
        """Stats for levels 1 to 40; levels missing from the catalog are synthesized"""
        levels = await catalog_db.read_template_levels(template_key)
        if levels is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
        return levels
