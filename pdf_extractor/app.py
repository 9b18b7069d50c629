from __future__ import annotations

import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .dependencies import lifespan, settings
from .routes import extraction, history, system, templates
from .schemas import ExtractFailure
from .services.extraction.errors import ValidationError

app = FastAPI(title="PDF Data Extractor", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_origin, "http://localhost", "http://127.0.0.1"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    body = ExtractFailure(error=str(exc), details="ValidationError")
    return JSONResponse(status_code=400, content=body.model_dump())


app.include_router(system.router)
app.include_router(extraction.router)
app.include_router(templates.router)
app.include_router(history.router)


if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("BACKEND_PORT", "8000"))
    uvicorn.run("pdf_extractor.app:app", host="0.0.0.0", port=port, reload=True)
