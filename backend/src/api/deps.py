from typing import Annotated

from fastapi import Depends

from src.config import get_settings
from src.services.export_service import ExportService


def get_export_service() -> ExportService:
    return ExportService(get_settings())


ExportServiceDep = Annotated[ExportService, Depends(get_export_service)]
