# routes.py
from fastapi import FastAPI
from controller.enforcement_controller import enforcement_router


def register_routes(app: FastAPI) -> None:
    """Register & Access control controllers here."""
    app.include_router(enforcement_router)
