"""
Client CSV import endpoints.

Endpoints:
    POST /api/import/clients            Upload a client CSV
    GET  /api/import/clients/template   Download a CSV template

The upload endpoint answers with a flat body rather than the API envelope:
    200 {message, importedCount, errorCount, errors}
    400 {error}   no file, or not a CSV
    500 {error}   unreadable CSV or unexpected failure
"""

import logging

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import Response
from starlette.responses import JSONResponse

from core.client_import import ClientImporter, build_template_csv, parse_csv_text

logger = logging.getLogger(__name__)


def _is_csv(file: UploadFile) -> bool:
    return "csv" in (file.content_type or "") or (file.filename or "").lower().endswith(".csv")


def create_import_router(services: dict) -> APIRouter:
    router = APIRouter()

    importer = ClientImporter(services["client"])

    @router.post("/import/clients")
    async def import_clients(file: UploadFile | None = File(None)):
        if file is None:
            return JSONResponse(status_code=400, content={"error": "No file provided"})

        if not _is_csv(file):
            return JSONResponse(
                status_code=400,
                content={"error": "Invalid file type. Please upload a CSV file."},
            )

        try:
            rows = parse_csv_text(await file.read())
            report = importer.import_rows(rows)
        except Exception:
            logger.exception(f"Error importing clients from {file.filename}")
            return JSONResponse(status_code=500, content={"error": "Failed to import clients"})

        return report.model_dump(by_alias=True)

    @router.get("/import/clients/template")
    async def client_template():
        return Response(
            content=build_template_csv(),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="clients_template.csv"'},
        )

    return router
