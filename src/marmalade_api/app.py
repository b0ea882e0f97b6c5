"""Runtime entrypoint assembling the registry FastAPI app."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marmalade_api.apis import elpa_router, packages_router, users_router
from marmalade_api.db.migrations import upgrade_database
from marmalade_api.http.errors import install_error_handlers

app = FastAPI(
    title="Marmalade",
    description="Emacs Lisp package archive",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

app.include_router(elpa_router)
app.include_router(packages_router)
app.include_router(users_router)


@app.on_event("startup")
def _startup() -> None:
    upgrade_database()
